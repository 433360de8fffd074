"""Locale-aware template selection.

Resolution order for ``(template_id, locale)``:
1. a user template override whose locale is unset or equal to ``locale``
2. exact ``(id, locale)`` index entry
3. ``(id, "en")`` when ``locale`` is not English
4. any entry with that id (legacy single-locale catalogs)

Anything resolved in a locale other than the requested one must be machine
translated after rendering. No match is fatal for the request.
"""

import logging
from dataclasses import dataclass

from app.core.catalog import Catalog, ConfigSource
from app.core.schemas_catalog import TemplateConfig, TemplateOverride

logger = logging.getLogger(__name__)

BASE_LOCALE = "en"


class TemplateNotFoundError(Exception):
    """Raised when no template entry resolves for an id."""


class TemplateLoadError(Exception):
    """Raised when a resolved template has no loadable body."""


@dataclass(frozen=True)
class TemplateResolution:
    template_id: str
    requested_locale: str
    resolved_locale: str
    config: TemplateConfig | None = None
    override: TemplateOverride | None = None

    @property
    def needs_translation(self) -> bool:
        return self.resolved_locale != self.requested_locale


def _find(templates: list[TemplateConfig], template_id: str, locale: str | None) -> TemplateConfig | None:
    return next(
        (t for t in templates if t.id == template_id and (locale is None or t.locale == locale)),
        None,
    )


def resolve_template(catalog: Catalog, template_id: str, locale: str) -> TemplateResolution:
    override = catalog.template_overrides.get(template_id)
    if override is not None and override.locale in (None, locale):
        return TemplateResolution(
            template_id=template_id,
            requested_locale=locale,
            resolved_locale=locale,
            override=override,
        )

    config = _find(catalog.templates, template_id, locale)
    if config is None and locale != BASE_LOCALE:
        config = _find(catalog.templates, template_id, BASE_LOCALE)
    if config is None:
        config = _find(catalog.templates, template_id, None)

    if config is None:
        raise TemplateNotFoundError(
            f"Template not found: {template_id} (checked {locale} and '{BASE_LOCALE}')"
        )

    if config.locale != locale:
        logger.warning(
            f"Template {template_id} has no '{locale}' variant; "
            f"using '{config.locale}' and translating"
        )

    return TemplateResolution(
        template_id=template_id,
        requested_locale=locale,
        resolved_locale=config.locale,
        config=config,
    )


async def load_template_body(resolution: TemplateResolution, source: ConfigSource) -> str:
    if resolution.override is not None:
        return resolution.override.content

    body = await source.load_template_body(resolution.config)
    if not body:
        raise TemplateLoadError(f"Failed to load template body for {resolution.template_id}")
    return body
