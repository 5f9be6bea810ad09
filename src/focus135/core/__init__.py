"""
Planner core.

Components:
- models.py: data structures (Project, Task, PlannerState, SizeTable)
- slots.py: 1-3-5 slot allocator
- urgency.py: urgency score, tiers, ranked project list, history
- streak.py: consecutive-day counter
- clock.py: pure daily tick evaluation + polling loop
- lifecycle.py: task completion and project completion/archiving
- planner.py: applies actions and ticks to the current snapshot, persists it
- ports.py: Protocols for storage and notification delivery
- state.py: AppState wiring for connectors and commands
"""
