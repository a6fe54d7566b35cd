import os

# Keep tests off the Redis mirror unless a test opts back in
os.environ.setdefault("DISABLE_EVENT_STREAM", "1")
