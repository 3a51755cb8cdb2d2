"""CodeStorm contest platform - navigation access and realtime event channel."""
