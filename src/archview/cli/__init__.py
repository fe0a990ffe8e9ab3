"""archview command line."""
