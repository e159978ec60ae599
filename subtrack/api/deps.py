"""SubTrack — API Dependencies."""

from fastapi import Request

from subtrack.analyzer.state import PipelineCoordinator


def get_coordinator(request: Request) -> PipelineCoordinator:
    """The application-wide coordinator created at startup."""
    return request.app.state.coordinator
