"""In-process analysis path used when no worker pool is available."""
import logging

from services.page_analyzer import AnalysisRequest, AnalysisResponse, handle_request

logger = logging.getLogger(__name__)


class InlineAnalyzer:
    """
    Runs worker requests in-process, on whichever thread calls ``run``.
    WorkerPool calls it from a single dedicated thread so the event loop
    never blocks on a parse.

    Executes the same ``handle_request`` entry point as the pool workers, so
    its responses are indistinguishable from pooled ones.
    """

    def __init__(self):
        self.requests_served = 0

    def run(self, request: AnalysisRequest) -> AnalysisResponse:
        logger.debug(
            f"Running {request.kind.value} inline for {request.file_name}",
            extra={"request_id": request.request_id, "file_name": request.file_name},
        )
        self.requests_served += 1
        return handle_request(request)
