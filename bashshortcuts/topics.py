"""
Event Topics for bash-shortcuts

All pub/sub topics are defined here for easy discovery and documentation.
Topic naming convention: <category>.<action>
"""

# Shortcut lifecycle notifications (params: event)
SHORTCUT_STARTED = "shortcut.started"
"""Published when a shortcut's process has been spawned and recorded as running."""

SHORTCUT_ENDED = "shortcut.ended"
"""Published once per run when a shortcut stops, by natural exit or by kill."""

SHORTCUT_LAUNCH_FAILED = "shortcut.launch_failed"
"""Published when a pre-hook or the spawn itself fails. Nothing is recorded."""

SHORTCUT_KILL_FAILED = "shortcut.kill_failed"
"""Published when a kill could not signal the process. State is still cleared."""

NOTIFICATION_TOPICS = (
    SHORTCUT_STARTED,
    SHORTCUT_ENDED,
    SHORTCUT_LAUNCH_FAILED,
    SHORTCUT_KILL_FAILED,
)

# Command events (imperative - tell components to do something)
CMD_LAUNCH_SHORTCUT = "cmd.launch_shortcut"
"""Command: Launch a shortcut. Params: shortcut"""

CMD_KILL_SHORTCUT = "cmd.kill_shortcut"
"""Command: Kill a running shortcut. Params: shortcut"""

# Host environment events
APP_ENDED = "app.ended"
"""Published by the host when an app-type shortcut closed. Params: shortcut_id, status"""
