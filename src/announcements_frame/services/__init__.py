# Announcements Frame Services
#
# This package contains the systemd service implementations for the frame.
# All services read /srv/announcements/config/announcements.conf and talk to
# each other only through files (inbox markers, mode/power state files and
# the live slide directory).
#
# Services:
#   - announcements_watcher.py: Watches inbox + live dirs, drives conversion runs
#   - announcements_convert.py: Publish pipeline (snapshot, convert, promote)
#   - announcements_status.py: Writes _STATUS_<ts>.txt while a run is active
#   - announcements_display.py: Schedule -> slideshow mode + display power
#   - announcements_slideshow.py: Launches the viewer on the selected deck
#   - announcements_temp_log.py: Oneshot SoC temperature logger (timer driven)
