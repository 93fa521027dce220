"""
Turn OCR-extracted school timetable entries into recurring calendar events.
"""
__version__ = "0.1.0"
