"""Application composition layer for the launcher.

Wires the Tk launcher window, the launcher view model, adapters, and use cases
into a runnable desktop (or headless console) process without placing
business logic in views.
"""
