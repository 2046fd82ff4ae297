"""CLI entry points for live-ladder package."""

import sys
from pathlib import Path


def main_serve():
    """Entry point for live-ladder command."""
    from live_ladder.core.main import main
    sys.exit(main())


def main_sweep():
    """Entry point for live-ladder-sweep command."""
    from live_ladder.core.main import sweep_main
    sys.exit(sweep_main())


if __name__ == "__main__":
    # If called directly, determine which command to run based on script name
    script_name = Path(sys.argv[0]).stem
    if "sweep" in script_name:
        main_sweep()
    else:
        main_serve()
