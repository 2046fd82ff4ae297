"""
Test package for live_ladder.

Unit tests cover the pure builders, the registry and cleanup; integration
tests run real child processes and the HTTP hook adapter.
"""

# Test configuration
TEST_CONFIG = {
    'timeout': 15,  # Seconds to wait for supervised processes to finish
}

__version__ = "1.0.0"
