"""API endpoints for interview sessions, analysis, and document generation."""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.core.document_generation import GeneratedOutput, OutputNotFoundError
from app.core.export_renderer import ExportFormat
from app.core.schemas_catalog import Question
from app.core.schemas_session import Session, ValidationSummary
from app.core.schemas_workspace import (
    AnalysisResponse,
    AnswerRequest,
    CreateSessionRequest,
    LanguageRequest,
    NavigateRequest,
    OverrideRequest,
    PreviewResponse,
    ResearchOrderResponse,
    TemplateOverrideRequest,
    VisibleQuestionsResponse,
)
from app.core.template_resolver import TemplateLoadError, TemplateNotFoundError
from app.services.clarity_workspace import (
    ClarityWorkspace,
    QuestionNotFoundError,
    SessionNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sessions"])


@lru_cache
def get_workspace() -> ClarityWorkspace:
    return ClarityWorkspace()


def _session_or_404(workspace: ClarityWorkspace, session_id: str) -> Session:
    try:
        return workspace.get_session(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# Lifecycle
# =============================================================================


@router.post("/sessions", response_model=Session, status_code=201)
async def create_session(
    data: CreateSessionRequest, workspace: ClarityWorkspace = Depends(get_workspace)
) -> Session:
    """Start a new interview session."""
    return await workspace.create_session(data.blueprint_id, data.output_language)


@router.post("/sessions/restore", response_model=Session)
async def restore_session(workspace: ClarityWorkspace = Depends(get_workspace)) -> Session:
    """Restore the persisted active session."""
    session = await workspace.restore_session()
    if session is None:
        raise HTTPException(status_code=404, detail="No persisted session")
    return session


@router.get("/sessions/{session_id}", response_model=Session)
async def get_session(session_id: str, workspace: ClarityWorkspace = Depends(get_workspace)) -> Session:
    return _session_or_404(workspace, session_id)


@router.post("/sessions/{session_id}/reset", response_model=Session)
async def reset_session(session_id: str, workspace: ClarityWorkspace = Depends(get_workspace)) -> Session:
    """Discard answers and edits; returns the fresh session (new id)."""
    try:
        return await workspace.reset(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/sessions/{session_id}/save", response_model=Session)
async def save_session(session_id: str, workspace: ClarityWorkspace = Depends(get_workspace)) -> Session:
    try:
        return workspace.save(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/sessions/{session_id}/language", response_model=Session)
async def set_language(
    session_id: str, data: LanguageRequest, workspace: ClarityWorkspace = Depends(get_workspace)
) -> Session:
    try:
        return workspace.set_language(session_id, data.output_language)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# Interview
# =============================================================================


@router.post("/sessions/{session_id}/answers", response_model=Session)
async def submit_answer(
    session_id: str, data: AnswerRequest, workspace: ClarityWorkspace = Depends(get_workspace)
) -> Session:
    """Record an answer and recompute visibility, gaps, and completion."""
    try:
        return await workspace.answer(session_id, data.question_id, data.value, data.confidence)
    except (SessionNotFoundError, QuestionNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/sessions/{session_id}/questions", response_model=VisibleQuestionsResponse)
async def visible_questions(
    session_id: str, workspace: ClarityWorkspace = Depends(get_workspace)
) -> VisibleQuestionsResponse:
    session = _session_or_404(workspace, session_id)
    questions = await workspace.visible_questions(session_id)
    return VisibleQuestionsResponse(current_question_id=session.current_question_id, questions=questions)


@router.post("/sessions/{session_id}/navigate", response_model=Session)
async def navigate(
    session_id: str, data: NavigateRequest, workspace: ClarityWorkspace = Depends(get_workspace)
) -> Session:
    try:
        return await workspace.navigate(session_id, data.direction, data.question_id)
    except (SessionNotFoundError, QuestionNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/sessions/{session_id}/validation", response_model=ValidationSummary)
async def validate(session_id: str, workspace: ClarityWorkspace = Depends(get_workspace)) -> ValidationSummary:
    _session_or_404(workspace, session_id)
    return await workspace.validate(session_id)


# =============================================================================
# Analysis
# =============================================================================


@router.post("/sessions/{session_id}/analysis", response_model=AnalysisResponse)
async def analyze(session_id: str, workspace: ClarityWorkspace = Depends(get_workspace)) -> AnalysisResponse:
    """Run every analyzer and replace the session's derived inferences."""
    try:
        run, session = await workspace.analyze(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return AnalysisResponse(
        session=session,
        generation=run.generation,
        applied=run.generation == session.analysis_generation,
        results=run.results,
        warnings=run.warnings,
    )


# =============================================================================
# Documents
# =============================================================================


@router.get("/sessions/{session_id}/preview", response_model=PreviewResponse)
async def preview(
    session_id: str,
    output_id: str | None = Query(None, description="Output to preview; default output if unset"),
    workspace: ClarityWorkspace = Depends(get_workspace),
) -> PreviewResponse:
    _session_or_404(workspace, session_id)
    sections = await workspace.preview(session_id, output_id)
    return PreviewResponse(session_id=session_id, sections=sections)


@router.get("/sessions/{session_id}/document", response_model=GeneratedOutput)
async def generate_document(
    session_id: str,
    output_id: str | None = Query(None),
    workspace: ClarityWorkspace = Depends(get_workspace),
) -> GeneratedOutput:
    _session_or_404(workspace, session_id)
    try:
        return await workspace.generate(session_id, output_id)
    except (OutputNotFoundError, TemplateNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TemplateLoadError as e:
        logger.exception(f"Failed to generate document for session {session_id}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/sessions/{session_id}/export")
async def export_document(
    session_id: str,
    format: ExportFormat = Query("md"),
    output_id: str | None = Query(None),
    workspace: ClarityWorkspace = Depends(get_workspace),
) -> Response:
    """Download the reconciled document as md, docx, or pdf."""
    _session_or_404(workspace, session_id)
    try:
        payload = await workspace.export(session_id, format, output_id)
    except (OutputNotFoundError, TemplateNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TemplateLoadError as e:
        logger.exception(f"Failed to export document for session {session_id}")
        raise HTTPException(status_code=500, detail=str(e))

    headers = {"Content-Disposition": f'attachment; filename="{payload.filename}"'}
    if payload.placeholder:
        headers["X-Export-Placeholder"] = "true"
    body = payload.data if payload.data is not None else (payload.text or "").encode("utf-8")
    return Response(content=body, media_type=payload.content_type, headers=headers)


@router.put("/sessions/{session_id}/overrides/{section_id}", response_model=Session)
async def set_override(
    session_id: str,
    section_id: str,
    data: OverrideRequest,
    workspace: ClarityWorkspace = Depends(get_workspace),
) -> Session:
    """Replace a section's content with a hand edit; survives regeneration."""
    try:
        return workspace.set_override(session_id, section_id, data.edited_text, data.original_text)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/sessions/{session_id}/overrides/{section_id}", response_model=Session)
async def revert_override(
    session_id: str, section_id: str, workspace: ClarityWorkspace = Depends(get_workspace)
) -> Session:
    try:
        return workspace.revert_override(session_id, section_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# Catalog
# =============================================================================


@router.post("/catalog/reload", status_code=204)
async def reload_catalog(workspace: ClarityWorkspace = Depends(get_workspace)) -> None:
    await workspace.reload_catalog()


@router.put("/catalog/questions", response_model=list[Question])
async def upload_questions(
    questions: list[Question], workspace: ClarityWorkspace = Depends(get_workspace)
) -> list[Question]:
    """Replace the question catalog with a custom upload."""
    catalog = await workspace.upload_questions(questions)
    return catalog.questions


@router.put("/catalog/templates/{template_id}/override", status_code=204)
async def set_template_override(
    template_id: str, data: TemplateOverrideRequest, workspace: ClarityWorkspace = Depends(get_workspace)
) -> None:
    await workspace.set_template_override(template_id, data.content, data.locale)


@router.delete("/catalog/templates/overrides", status_code=204)
async def clear_template_overrides(workspace: ClarityWorkspace = Depends(get_workspace)) -> None:
    await workspace.clear_template_overrides()


@router.get("/research/{area}/order", response_model=ResearchOrderResponse)
async def research_order(area: str, workspace: ClarityWorkspace = Depends(get_workspace)) -> ResearchOrderResponse:
    """Research questions of an area in dependency order."""
    schedule = await workspace.research_order(area)
    return ResearchOrderResponse(
        area=area,
        ordered=schedule.ordered,
        unresolved=schedule.unresolved,
        warnings=schedule.warnings,
    )
