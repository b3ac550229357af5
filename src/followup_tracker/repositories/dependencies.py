"""Dependency injection for repository layer."""

from fastapi import Depends
from sqlalchemy.orm import Session

from ..config import get_config
from ..db.database import get_db
from ..services.application_service import TrackingApplicationService
from .interfaces import RepositoryContainer
from .sqlalchemy_impl import create_sqlalchemy_container


def get_repository_container(
    db: Session = Depends(get_db),
) -> RepositoryContainer:
    """
    Create and configure a repository container with SQLAlchemy implementations.

    This is the main dependency injection point for repositories.
    """
    return create_sqlalchemy_container(
        db, default_statuses=get_config().editor.default_line_statuses
    )


def get_application_service(
    container: RepositoryContainer = Depends(get_repository_container),
) -> TrackingApplicationService:
    """Get an application service bound to the request's session."""
    return TrackingApplicationService(container.documents)
