from .controller import Controller, Direction, ProportionalMode

__all__ = ["Controller", "Direction", "ProportionalMode"]
