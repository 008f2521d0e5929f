#!/usr/bin/env python3
# backend/run_celery_worker.py
"""
Development Celery worker runner.

Runs the outbox delivery and maintenance queues in one worker. Set
RUN_BEAT=1 to embed the beat scheduler (outbox dispatch, notification purge).
"""
import os
from pathlib import Path
import subprocess
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

if __name__ == "__main__":
    queues = os.getenv("CELERY_QUEUES") or "celery,notifications,maintenance"
    print(f"Starting Celery worker, consuming queues: {queues}")

    cmd = [
        sys.executable,
        "-m",
        "celery",
        "-A",
        "app.tasks.celery_app",
        "worker",
        "--loglevel=info",
        "--concurrency=2",
        "--max-tasks-per-child=100",
        "-Q",
        queues,
    ]
    if os.getenv("RUN_BEAT") == "1":
        cmd.append("--beat")

    subprocess.run(cmd)
