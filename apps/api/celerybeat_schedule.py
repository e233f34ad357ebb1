"""
Celery Beat Schedule Configuration

One periodic entry per registered cron job, using the job's own crontab
expression (UTC).
"""

from celery.schedules import crontab

from services.cron_jobs import CRON_JOBS


def crontab_from_expression(expression: str) -> crontab:
    """``"0 9 * * *"`` -> crontab(minute="0", hour="9", ...)."""
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"Expected 5 crontab fields, got {expression!r}")
    minute, hour, day_of_month, month_of_year, day_of_week = fields
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


beat_schedule = {
    f"cron-{key}": {
        'task': 'tasks.run_cron_job',
        'schedule': crontab_from_expression(job.schedule),
        'args': (key,),
    }
    for key, job in CRON_JOBS.items()
}
