"""Configuration catalogs: loading and the request-scoped lookup.

Catalogs are fetched as JSON arrays, either from a local directory or over HTTP.
A fetch failure never raises: it yields an empty list plus a logged diagnostic.
Entries that fail schema validation are skipped individually.

A ``Catalog`` is built once per pipeline invocation and passed explicitly to
every stage, so swapping configuration at runtime cannot leave stale lookups
behind in other sessions.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field, replace
from functools import cached_property
from pathlib import Path
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from app.core.config import get_settings
from app.core.metrics import timer
from app.core.schemas_catalog import (
    Blueprint,
    OutputFileConfig,
    Question,
    ResearchQuestion,
    TemplateConfig,
    TemplateOverride,
)

logger = logging.getLogger(__name__)

QUESTIONS_FILE = "questions.json"
BLUEPRINTS_FILE = "blueprints.json"
RESEARCH_QUESTIONS_FILE = "research-questions.json"
OUTPUTS_FILE = "outputs.json"
TEMPLATE_INDEX_FILE = "templates/index.json"

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class Catalog:
    """Immutable snapshot of every configuration catalog."""

    questions: list[Question] = field(default_factory=list)
    blueprints: list[Blueprint] = field(default_factory=list)
    research_questions: list[ResearchQuestion] = field(default_factory=list)
    templates: list[TemplateConfig] = field(default_factory=list)
    outputs: list[OutputFileConfig] = field(default_factory=list)
    template_overrides: dict[str, TemplateOverride] = field(default_factory=dict)

    @cached_property
    def question_map(self) -> dict[str, Question]:
        return {q.id: q for q in self.questions}

    def get_question(self, question_id: str) -> Question | None:
        return self.question_map.get(question_id)

    def get_blueprint(self, blueprint_id: str | None) -> Blueprint | None:
        """Blueprint by id, falling back to the first one when the id is unknown."""
        for blueprint in self.blueprints:
            if blueprint.id == blueprint_id:
                return blueprint
        return self.blueprints[0] if self.blueprints else None

    def get_output(self, output_id: str) -> OutputFileConfig | None:
        return next((o for o in self.outputs if o.id == output_id), None)

    def with_questions(self, questions: list[Question]) -> Catalog:
        """Replace the question catalog (custom upload)."""
        return replace(self, questions=list(questions))

    def with_template_override(
        self, template_id: str, content: str, locale: str | None = None
    ) -> Catalog:
        overrides = dict(self.template_overrides)
        overrides[template_id] = TemplateOverride(content=content, locale=locale)
        return replace(self, template_overrides=overrides)

    def without_template_overrides(self) -> Catalog:
        return replace(self, template_overrides={})


class ConfigSource:
    """Fetches catalogs from ``CONFIG_BASE_URL`` when set, else from ``CONFIG_DIR``."""

    def __init__(
        self,
        config_dir: str | Path | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self.config_dir = Path(config_dir or settings.CONFIG_DIR)
        self.base_url = (base_url if base_url is not None else settings.CONFIG_BASE_URL) or None
        self.timeout = timeout or settings.CONFIG_TIMEOUT_SECONDS

    async def _read_text(self, relative: str) -> str:
        if self.base_url:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.base_url.rstrip('/')}/config/{relative}")
                response.raise_for_status()
                return response.text
        return await asyncio.to_thread((self.config_dir / relative).read_text, encoding="utf-8")

    async def _load_list(self, relative: str, model: type[M]) -> list[M]:
        try:
            raw: Any = json.loads(await self._read_text(relative))
        except (OSError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to load catalog {relative}: {e}")
            return []

        if not isinstance(raw, list):
            logger.error(f"Catalog {relative} must be a JSON array, got {type(raw).__name__}")
            return []

        items: list[M] = []
        for index, entry in enumerate(raw):
            try:
                items.append(model.model_validate(entry))
            except SchemaValidationError as e:
                logger.warning(f"Skipping invalid entry {index} in {relative}: {e.error_count()} errors")
        return items

    async def load_questions(self) -> list[Question]:
        return await self._load_list(QUESTIONS_FILE, Question)

    async def load_blueprints(self) -> list[Blueprint]:
        return await self._load_list(BLUEPRINTS_FILE, Blueprint)

    async def load_research_questions(self) -> list[ResearchQuestion]:
        return await self._load_list(RESEARCH_QUESTIONS_FILE, ResearchQuestion)

    async def load_templates(self) -> list[TemplateConfig]:
        return await self._load_list(TEMPLATE_INDEX_FILE, TemplateConfig)

    async def load_outputs(self) -> list[OutputFileConfig]:
        return await self._load_list(OUTPUTS_FILE, OutputFileConfig)

    async def load_catalog(self) -> Catalog:
        """Load all catalogs concurrently into one snapshot."""
        with timer("load catalog", log_level="debug"):
            questions, blueprints, research, templates, outputs = await asyncio.gather(
                self.load_questions(),
                self.load_blueprints(),
                self.load_research_questions(),
                self.load_templates(),
                self.load_outputs(),
            )
        return Catalog(
            questions=questions,
            blueprints=blueprints,
            research_questions=research,
            templates=templates,
            outputs=outputs,
        )

    async def load_template_body(self, config: TemplateConfig) -> str:
        """Template body from the inline ``body`` or the ``path``; empty string on failure."""
        if config.body is not None:
            return config.body
        if not config.path:
            logger.error(f"Template {config.id} ({config.locale}) has neither body nor path")
            return ""
        try:
            return await self._read_text(config.path)
        except (OSError, httpx.HTTPError) as e:
            logger.error(f"Failed to load template body {config.path}: {e}")
            return ""
