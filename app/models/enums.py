"""Centralized Enum Definitions"""

import enum


class Shift(str, enum.Enum):
    """Enrollment time-of-day category; the value is the letter used in enrollment codes"""
    MORNING = "M"
    AFTERNOON = "T"
    NIGHT = "N"
