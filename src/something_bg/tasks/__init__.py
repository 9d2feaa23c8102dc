"""
Scheduled-task subsystem.

Components:
- cron.py: cron expression parsing + next occurrence (croniter)
- task_models.py: ScheduledTask, TaskState, TaskSnapshot
- task_store.py: JSON-backed persisted state (whole-file overwrite)
- task_scheduler.py: polling scheduler, manual runs, missed-run recovery
- formatting.py: human-readable schedule / timestamp text
"""
