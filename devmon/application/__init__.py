"""Application layer.

Ports (interfaces the engine consumes) and the composition root.

Rule of thumb:
UI -> application.container -> monitoring / services
"""
