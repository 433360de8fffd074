"""Client for the external viability analysis service.

``POST {ANALYSIS_SERVICE_URL}/api/analyze/viability`` with
``{sessionId, blueprintId, answers}``; the service answers with a structured
assessment. Any transport error, non-2xx status, or malformed body raises
``AnalysisServiceError`` so the calling analyzer can degrade gracefully.
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaValidationError
from pydantic.alias_generators import to_camel

from app.core.config import get_settings
from app.core.schemas_analysis import Level

logger = logging.getLogger(__name__)

VIABILITY_PATH = "/api/analyze/viability"


class AnalysisServiceError(Exception):
    """Raised when the analysis service call fails or returns an unusable body."""


class ServiceFollowUp(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question_id: str
    text: str
    section: str = ""
    priority: Level = "medium"


class ViabilityServiceResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    feasibility: Level
    overall_risk: Level
    key_constraints: list[str] = Field(default_factory=list)
    assumptions: list[str] = Field(default_factory=list)
    suggested_follow_up_questions: list[ServiceFollowUp] = Field(default_factory=list)


class ViabilityClient:
    """Thin async wrapper over the viability endpoint."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        settings = get_settings()
        self.base_url = base_url if base_url is not None else settings.ANALYSIS_SERVICE_URL
        self.timeout = timeout or settings.ANALYSIS_TIMEOUT_SECONDS

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def analyze_viability(
        self,
        session_id: str,
        blueprint_id: str,
        answers: dict[str, Any],
    ) -> ViabilityServiceResponse:
        """
        Request a viability assessment.

        Args:
            session_id: Session being analyzed
            blueprint_id: Interview flow the answers belong to
            answers: Serialized raw answers keyed by question id

        Returns:
            Parsed service response

        Raises:
            AnalysisServiceError: On transport failure, timeout, non-2xx, or malformed JSON
        """
        if not self.base_url:
            raise AnalysisServiceError("ANALYSIS_SERVICE_URL not configured")

        payload = {"sessionId": session_id, "blueprintId": blueprint_id, "answers": answers}
        url = f"{self.base_url.rstrip('/')}{VIABILITY_PATH}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            raise AnalysisServiceError(
                f"Viability analysis failed: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise AnalysisServiceError(f"Viability analysis request failed: {e}") from e
        except ValueError as e:
            raise AnalysisServiceError("Viability analysis returned malformed JSON") from e

        try:
            result = ViabilityServiceResponse.model_validate(body)
        except SchemaValidationError as e:
            raise AnalysisServiceError(
                f"Viability analysis response failed validation ({e.error_count()} errors)"
            ) from e

        logger.info(
            f"Viability analysis for session {session_id}: feasibility={result.feasibility}, "
            f"risk={result.overall_risk}, constraints={len(result.key_constraints)}"
        )
        return result
