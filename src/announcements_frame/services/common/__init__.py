# Announcements Frame Services - Common Utilities
#
# This package contains shared utilities used across all frame services.
# Import directly from the specific module, not from this __init__.py.
#
# Example:
#   from announcements_frame.services.common.config import load_config
#   from announcements_frame.services.common.markers import FileMarkerStore
