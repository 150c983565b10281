"""Tests for templates, context formatting, guardrails and the token budget"""

import pytest

from conftest import WordCodec
from esg_rag.exceptions import TemplateNotFound
from esg_rag.rag.context.token_budget import BudgetConfig, TokenBudget
from esg_rag.rag.prompts import (
    CITATION_INSTRUCTION,
    DEFAULT_TEMPLATES,
    DISCLAIMER,
    INSUFFICIENT_INFORMATION_MESSAGE,
    NO_CONTEXT_MESSAGE,
    ComplianceTone,
    PromptContext,
    PromptStrategy,
    RequesterRole,
    RetrievedChunk,
    TemplateRegistry,
    Urgency,
    UserContext,
    default_registry,
    detect_potential_hallucination,
    format_retrieved_context,
    format_source_header,
    substitute_placeholders,
)
from esg_rag.rag.schemas.vectors import SearchResult


@pytest.fixture
def strategy():
    return PromptStrategy()


@pytest.fixture
def chunks():
    return [
        RetrievedChunk("The board shall oversee climate risks.", filename="tcfd.txt", region="Global",
                       organization="TCFD", page_number=4),
        RetrievedChunk("Scope 3 emissions must be disclosed.", filename="esrs_e1.txt"),
    ]


class TestTemplateRegistry:

    def test_four_profiles(self):
        registry = default_registry()
        assert set(registry) == {"esg-compliance", "legal-audit", "technical-implementation", "quick-reference"}
        assert registry["legal-audit"].compliance_tone == ComplianceTone.LEGAL
        assert all(template.guardrails for template in registry.all())

    def test_require_unknown(self):
        with pytest.raises(TemplateNotFound) as exc_info:
            default_registry().require("poetry")
        assert exc_info.value.template_id == "poetry"
        assert "legal-audit" in exc_info.value.details["available"]

    def test_registry_is_read_only(self):
        registry = default_registry()
        with pytest.raises(TypeError):
            registry["custom"] = DEFAULT_TEMPLATES[0]
        with pytest.raises(TypeError):
            registry._templates["custom"] = DEFAULT_TEMPLATES[0]

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            TemplateRegistry([DEFAULT_TEMPLATES[0], DEFAULT_TEMPLATES[0]])

    def test_template_wire_shape(self):
        data = default_registry()["quick-reference"].to_dict()
        assert data["responseFormat"] == "bullet-points"
        assert isinstance(data["guardrails"], list)


class TestFormatting:

    def test_source_header(self, chunks):
        assert format_source_header(1, chunks[0]) == (
            "[Source 1: tcfd.txt | Region: Global | Authority: TCFD | Page: 4]"
        )
        assert format_source_header(2, chunks[1]) == "[Source 2: esrs_e1.txt]"

    def test_context_layout(self, chunks):
        context = format_retrieved_context(chunks)
        assert context.startswith("[Source 1: tcfd.txt")
        assert "\n---\n\n[Source 2: esrs_e1.txt]\nScope 3 emissions must be disclosed." in context

    def test_no_chunks(self):
        assert format_retrieved_context([]) == NO_CONTEXT_MESSAGE

    def test_from_search_result(self):
        result = SearchResult("id", "text", {"filename": "gri.txt", "pageNumber": 9, "region": ""}, 0.5)
        chunk = RetrievedChunk.from_search_result(result)
        assert chunk.filename == "gri.txt"
        assert chunk.page_number == 9
        assert chunk.region is None

    def test_substitution_is_single_pass(self):
        result = substitute_placeholders("C: {context}\nQ: {question}", "uses {question} literally", "why {context}?")
        assert result == "C: uses {question} literally\nQ: why {context}?"


class TestGeneratePrompt:

    def test_prompt_contains_context_and_question(self, strategy, chunks):
        prompt = strategy.generate_prompt("esg-compliance", PromptContext("What must the board do?", chunks))

        template = default_registry()["esg-compliance"]
        assert prompt.system_prompt == template.system_prompt
        assert "QUESTION: What must the board do?" in prompt.user_prompt
        assert "[Source 1: tcfd.txt" in prompt.user_prompt
        assert prompt.guardrails == list(template.guardrails)

    def test_unknown_template(self, strategy):
        with pytest.raises(TemplateNotFound):
            strategy.generate_prompt("missing", PromptContext("q"))

    def test_empty_context_says_so(self, strategy):
        prompt = strategy.generate_prompt("quick-reference", PromptContext("q"))
        assert NO_CONTEXT_MESSAGE in prompt.user_prompt

    def test_user_context_and_citation_instruction(self, strategy, chunks):
        context = PromptContext(
            "q",
            chunks,
            UserContext(role=RequesterRole.AUDITOR, organization="Acme", urgency=Urgency.HIGH),
        )

        prompt = strategy.generate_prompt("legal-audit", context, include_citation_instruction=True)

        assert "REQUESTER CONTEXT: Role: auditor | Organization: Acme | Urgency: high" in prompt.user_prompt
        assert prompt.user_prompt.endswith(CITATION_INSTRUCTION)


class TestValidation:

    def test_grounded_answer_is_valid(self, strategy):
        report = strategy.validate_response(
            "Based on the provided documents [Source 1], the board must oversee climate risk.", "esg-compliance"
        )
        assert report.is_valid
        assert report.violations == []

    def test_hedged_uncited_answer(self, strategy):
        report = strategy.validate_response("Generally speaking, companies disclose emissions.", "esg-compliance")

        assert not report.is_valid
        assert any("hallucination" in v for v in report.violations)
        assert "Missing regulatory citations" in report.violations
        assert "Consider expressing uncertainty when context is limited" in report.recommendations

    def test_hedge_with_citation_is_not_hallucination(self):
        assert not detect_potential_hallucination("Generally speaking, see Section 4.2 of the standard.")

    def test_legal_profile_recommends_modal_verbs(self, strategy):
        report = strategy.validate_response("Disclosures are listed in [Source 1].", "legal-audit")
        assert "Use more precise legal terminology" in report.recommendations

        report = strategy.validate_response("Disclosures are listed in [Source 1].", "esg-compliance")
        assert "Use more precise legal terminology" not in report.recommendations

    def test_wire_shape(self, strategy):
        data = strategy.validate_response("x", "esg-compliance").to_dict()
        assert set(data) == {"isValid", "violations", "recommendations"}


class TestApplyGuardrails:

    @pytest.mark.parametrize("answer", ["", "A confident answer [Source 1].", "Generally speaking, yes."])
    def test_no_chunks_always_insufficient(self, strategy, answer):
        assert strategy.apply_guardrails(answer, PromptContext("q")) == INSUFFICIENT_INFORMATION_MESSAGE

    def test_disclaimer_appended(self, strategy, chunks):
        answer = "In most cases, boards review climate risk."
        assert strategy.apply_guardrails(answer, PromptContext("q", chunks)) == answer + DISCLAIMER

    def test_cited_answer_untouched(self, strategy, chunks):
        answer = "In most cases boards review climate risk [Source 1]."
        assert strategy.apply_guardrails(answer, PromptContext("q", chunks)) == answer


class TestTokenBudget:

    def _chunk(self, n_words, name):
        return RetrievedChunk(" ".join(["word"] * n_words), filename=name)

    def test_admits_in_rank_order_until_full(self):
        budget = TokenBudget(BudgetConfig(max_tokens=60), codec=WordCodec())
        chunks = [self._chunk(20, "a"), self._chunk(20, "b"), self._chunk(20, "c")]

        selection = budget.select(chunks)

        assert [c.filename for c in selection.selected] == ["a", "b"]
        assert [c.filename for c in selection.dropped] == ["c"]
        assert selection.truncated
        assert selection.used_tokens <= 60

    def test_first_chunk_always_admitted(self):
        budget = TokenBudget(BudgetConfig(max_tokens=5), codec=WordCodec())
        selection = budget.select([self._chunk(50, "big"), self._chunk(1, "small")])

        assert [c.filename for c in selection.selected] == ["big"]
        assert [c.filename for c in selection.dropped] == ["small"]

    def test_character_estimate_without_codec(self):
        budget = TokenBudget(BudgetConfig(chars_per_token=4.0))
        assert budget.estimate_tokens("") == 0
        assert budget.estimate_tokens("abc") == 1
        assert budget.estimate_tokens("a" * 40) == 10
