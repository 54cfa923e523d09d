from .sessions import DisplayState, DisplayStateStore

__all__ = ["DisplayState", "DisplayStateStore"]
