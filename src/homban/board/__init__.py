"""
Board subsystem.

Components:
- duration.py: calendar-aware recurrence periods (parse/format, add to a date)
- board_models.py: immutable data structures (Board, Task, Lane, schedules)
- readiness.py: when an inactive task becomes ready again
- board_service.py: single-writer mutation engine + observer fan-out (BoardStore)
- board_scheduler.py: background loop that moves tasks between lanes over time
- board_repo.py: SQLite-backed snapshot persistence
- runtime.py: system clock, chunking asyncio sleeper, UUID generator
"""
