"""
Daily itinerary engine for a mobile worker.

Components:
- planning/: location graph + daily schedule generator
- storage/: schedule/task stores (in-memory map, SQLite)
- delays/: delay reporting, propagation and reset
- monitor/: live delay monitor + pure current/next/overdue selectors
- service.py: public operations used by outer layers (console CLI, web apps)
"""

__version__ = "0.1.0"
