# backend/jayple/api/dependencies.py
"""
FastAPI dependencies: database session, caller identity and the dispatch
engine. Tests override get_db, get_clock and get_task_scheduler.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..auth import caller_from_token
from ..core.caller import Caller
from ..core.clock import Clock, SystemClock
from ..core.exceptions import PermissionDeniedException
from ..database import get_db
from ..services.dispatch import DispatchEngine
from ..services.task_scheduler import CeleryTaskScheduler, TaskScheduler

bearer_scheme = HTTPBearer(auto_error=False)

_system_clock = SystemClock()


def get_clock() -> Clock:
    return _system_clock


def get_task_scheduler() -> TaskScheduler:
    return CeleryTaskScheduler()


def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Caller:
    token = credentials.credentials if credentials else None
    return caller_from_token(token)


def require_operator(caller: Caller = Depends(get_current_caller)) -> Caller:
    if not caller.is_operator:
        raise PermissionDeniedException("Operator role required")
    return caller


def get_dispatch_engine(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    scheduler: TaskScheduler = Depends(get_task_scheduler),
) -> DispatchEngine:
    return DispatchEngine(db, clock=clock, scheduler=scheduler)
