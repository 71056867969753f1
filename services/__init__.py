"""
Services Package

Event-loop services that sit between the exchange adapters and the screen:
- render_scheduler: debounced redraw scheduling
- notifier: change-rate threshold notifications
"""
