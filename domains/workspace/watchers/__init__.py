"""
Workspace watchers

- filesystem.py - Debounced, categorized change notifications (watchdog)
- recorder.py - Bounded buffer of recent events for API consumers
"""
