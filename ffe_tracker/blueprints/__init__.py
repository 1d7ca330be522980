"""
FFE Tracker
HTTP blueprints (health, template authoring, room FFE state).
"""
