from fastapi import APIRouter, Depends

from subdomain_engine.api.container import get_scheduler
from subdomain_engine.api.schemas.subdomain import SweepSummaryResponse, SweeperStatusResponse

router = APIRouter(prefix="/sweeper", tags=["sweeper"])


@router.post("/trigger", response_model=SweepSummaryResponse)
def trigger_sweep(
    include_retries: bool = True,
    scheduler=Depends(get_scheduler),
):
    """Run a sweep cycle now. Returns a skipped summary if one is already running."""
    summary = scheduler.trigger_now(include_retries=include_retries)
    return SweepSummaryResponse(**summary.to_dict())


@router.get("/status", response_model=SweeperStatusResponse)
def sweeper_status(scheduler=Depends(get_scheduler)):
    return SweeperStatusResponse(**scheduler.status())


@router.post("/start", response_model=SweeperStatusResponse)
def start_sweeper(scheduler=Depends(get_scheduler)):
    scheduler.start()
    return SweeperStatusResponse(**scheduler.status())


@router.post("/stop", response_model=SweeperStatusResponse)
def stop_sweeper(scheduler=Depends(get_scheduler)):
    scheduler.stop()
    return SweeperStatusResponse(**scheduler.status())
