# Core modules for live_ladder
