"""Tests for the analyzer fan-out and result aggregation."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.core.analysis_engine import DEFAULT_ANALYZERS, merge_results, run_analysis
from app.core.analysis_service import AnalysisServiceError, ViabilityClient
from app.core.schemas_analysis import AnalyzerResult, PainPoint, PainPointOutput, Provenance

from tests.fixtures_sessions import make_session


def _pain_point_analyzer(analyzer_id: str, delay: float):
    async def analyzer(ctx):
        await asyncio.sleep(delay)
        return AnalyzerResult(
            analyzer_id=analyzer_id,
            confidence="high",
            outputs=[
                PainPointOutput(
                    data=PainPoint(id=f"pp_{analyzer_id}", description=analyzer_id),
                    provenance=Provenance(references=[analyzer_id]),
                )
            ],
        )

    return analyzer


def _mock_http(MockClient, response):
    client_instance = AsyncMock()
    client_instance.post.return_value = response
    MockClient.return_value.__aenter__ = AsyncMock(return_value=client_instance)
    MockClient.return_value.__aexit__ = AsyncMock(return_value=None)
    return client_instance


class TestMergeResults:
    def test_provenance_attached_to_records(self):
        result = AnalyzerResult(
            analyzer_id="a",
            outputs=[
                PainPointOutput(
                    data=PainPoint(id="pp_1", description="Slow"),
                    provenance=Provenance(references=["q1"]),
                )
            ],
        )
        merged = merge_results([result])
        assert merged.pain_points[0].provenance.references == ["q1"]
        assert merged.personas == []


class TestRunAnalysis:
    @pytest.mark.asyncio
    async def test_merge_order_is_declaration_order_not_completion_order(self, catalog):
        analyzers = [
            ("slow", _pain_point_analyzer("slow", 0.05)),
            ("fast", _pain_point_analyzer("fast", 0.0)),
            ("medium", _pain_point_analyzer("medium", 0.02)),
        ]
        run = await run_analysis(make_session(), catalog, analyzers=analyzers)
        assert [p.id for p in run.inferences.pain_points] == ["pp_slow", "pp_fast", "pp_medium"]

    @pytest.mark.asyncio
    async def test_failing_analyzer_is_isolated(self, catalog):
        async def broken(ctx):
            raise RuntimeError("boom")

        analyzers = [
            ("first", _pain_point_analyzer("first", 0.0)),
            ("broken", broken),
            ("last", _pain_point_analyzer("last", 0.01)),
        ]
        run = await run_analysis(make_session(), catalog, analyzers=analyzers)

        assert [p.id for p in run.inferences.pain_points] == ["pp_first", "pp_last"]
        assert run.results[1].analyzer_id == "broken"
        assert run.results[1].error == "boom"
        assert any("broken failed" in w for w in run.warnings)

    @pytest.mark.asyncio
    async def test_generation_defaults_to_session(self, catalog):
        session = make_session(analysis_generation=4)
        run = await run_analysis(session, catalog, analyzers=[])
        assert run.generation == 4
        assert run.session_id == "sess-1"

    @pytest.mark.asyncio
    async def test_default_analyzers_without_service(self, catalog):
        session = make_session({"q1": "Feedback gets lost", "q3": "Product managers", "q6": "B2B SaaS"})
        run = await run_analysis(session, catalog, viability_client=ViabilityClient(base_url=""))

        assert [r.analyzer_id for r in run.results] == [aid for aid, _ in DEFAULT_ANALYZERS]
        assert run.inferences.counts() == {
            "pain_points": 1,
            "personas": 1,
            "market_sizing": 1,
            "viability": 0,
        }
        assert any("not configured" in w for w in run.warnings)

    @pytest.mark.asyncio
    async def test_viability_through_http_service(self, catalog):
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock()
        mock_response.json.return_value = {
            "feasibility": "high",
            "overallRisk": "low",
            "keyConstraints": ["Regulation"],
            "assumptions": [],
            "suggestedFollowUpQuestions": [
                {"questionId": "f1", "text": "Which regulator?", "section": "viability", "priority": "high"}
            ],
        }
        session = make_session({"q1": "Feedback gets lost"})

        with patch("httpx.AsyncClient") as MockClient:
            client_instance = _mock_http(MockClient, mock_response)
            run = await run_analysis(
                session, catalog, viability_client=ViabilityClient(base_url="https://analysis.test")
            )

        url = client_instance.post.call_args.args[0]
        payload = client_instance.post.call_args.kwargs["json"]
        assert url == "https://analysis.test/api/analyze/viability"
        assert payload["sessionId"] == "sess-1"
        assert payload["blueprintId"] == "bp_standard_v1"

        viability = run.inferences.viability[0]
        assert viability.feasibility == "high"
        assert viability.key_constraints == ["Regulation"]
        assert run.inferences.follow_up_questions[0].question_id == "f1"


class TestViabilityClient:
    @pytest.mark.asyncio
    async def test_http_error_status(self):
        request = httpx.Request("POST", "https://analysis.test/api/analyze/viability")
        response = httpx.Response(503, request=request)
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock(
            side_effect=httpx.HTTPStatusError("unavailable", request=request, response=response)
        )

        with patch("httpx.AsyncClient") as MockClient:
            _mock_http(MockClient, mock_response)
            with pytest.raises(AnalysisServiceError, match="HTTP 503"):
                await ViabilityClient(base_url="https://analysis.test").analyze_viability("s", "bp", {})

    @pytest.mark.asyncio
    async def test_timeout(self):
        with patch("httpx.AsyncClient") as MockClient:
            client_instance = _mock_http(MockClient, None)
            client_instance.post.side_effect = httpx.ReadTimeout("too slow")
            with pytest.raises(AnalysisServiceError, match="request failed"):
                await ViabilityClient(base_url="https://analysis.test").analyze_viability("s", "bp", {})

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock()
        mock_response.json.return_value = {"feasibility": "unknown"}

        with patch("httpx.AsyncClient") as MockClient:
            _mock_http(MockClient, mock_response)
            with pytest.raises(AnalysisServiceError, match="failed validation"):
                await ViabilityClient(base_url="https://analysis.test").analyze_viability("s", "bp", {})

    @pytest.mark.asyncio
    async def test_not_configured(self):
        with pytest.raises(AnalysisServiceError, match="not configured"):
            await ViabilityClient(base_url="").analyze_viability("s", "bp", {})
