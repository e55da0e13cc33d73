#subdomain_engine/api/container.py
from fastapi import Request

from subdomain_engine.container import Container
from subdomain_engine.lifecycle.orchestrator import SubdomainOrchestrator
from subdomain_engine.sweeper.scheduler import SweeperScheduler


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_orchestrator(request: Request) -> SubdomainOrchestrator:
    return get_container(request).orchestrator


def get_scheduler(request: Request) -> SweeperScheduler:
    return get_container(request).scheduler
