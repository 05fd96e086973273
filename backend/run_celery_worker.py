#!/usr/bin/env python3
# backend/run_celery_worker.py
"""
Celery worker runner for local development.

Consumes the dispatch (assignment timeouts) and settlements queues; pass
--beat to embed the beat scheduler for the weekly settlement run.
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
    queues = os.getenv("CELERY_QUEUES") or "dispatch,settlements,celery"
    print(f"Consuming queues: {queues}")

    cmd = [
        sys.executable,
        "-m",
        "celery",
        "-A",
        "jayple.tasks.celery_app",
        "worker",
        "--loglevel=info",
        "--concurrency=2",
        "--pool=prefork",
        "-Q",
        queues,
    ]
    if "--beat" in sys.argv[1:]:
        cmd.append("--beat")

    subprocess.run(cmd)
