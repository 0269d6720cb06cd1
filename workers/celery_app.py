import os
from celery import Celery
from dotenv import load_dotenv

load_dotenv()

broker = os.getenv("REDIS_URL", "redis://localhost:6379/0")
backend = broker

celery = Celery("festvote_workers", broker=broker, backend=backend, include=["workers.tasks"])
celery.conf.task_routes = {
    "tasks.close_expired_voting_groups": {"queue": "voting"},
}

# Beat schedule for periodic tasks
celery.conf.beat_schedule = {}
if os.getenv("VOTING_AUTO_CLOSE", "false").lower() in ("1", "true", "yes", "on"):
    celery.conf.beat_schedule["close-expired-voting-groups"] = {
        "task": "tasks.close_expired_voting_groups",
        "schedule": 60.0,  # every minute
    }
