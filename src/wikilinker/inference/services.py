"""External semantic calls backed by pydantic-ai agents.

The resolver only depends on the ``SemanticServices`` protocol. The
``LLMSemanticServices`` implementation runs one agent per call family
against an OpenAI-compatible endpoint, using ``NativeOutput`` so replies
are constrained by ``response_format`` and validated against the schemas
in ``wikilinker.inference.schemas``.

Any transport failure or reply that does not validate is raised as a
``ServiceError``; each call site in the resolver decides how to fall back.
"""

from __future__ import annotations

import json
import logging
from typing import Protocol, TypeVar

from openai import APIError
from pydantic_ai import Agent, NativeOutput
from pydantic_ai.exceptions import AgentRunError
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from wikilinker.config import settings
from wikilinker.errors import ServiceError, TaggingError
from wikilinker.inference.schemas import (
    DisambiguationRequest,
    DisambiguationVerdict,
    NarrowingRequest,
    NarrowingVerdict,
    NewlyIntroducedVerdict,
    OccurrenceContext,
    SameNameVerdict,
)
from wikilinker.models.entity import EntityTypeConfig

logger = logging.getLogger(__name__)

OutputT = TypeVar("OutputT")


class SemanticServices(Protocol):
    """Opaque semantic judgments consumed by the resolution pipeline.

    Implementations raise ServiceError on failure.
    """

    async def tag(self, text: str, entity_types: list[EntityTypeConfig]) -> str:
        """Return ``text`` with ``<entity id=... type=...>`` spans inserted."""
        ...

    async def narrow(self, request: NarrowingRequest) -> NarrowingVerdict:
        """Keep only candidates whose names plausibly match each entity."""
        ...

    async def disambiguate(self, request: DisambiguationRequest) -> DisambiguationVerdict:
        """Pick the best candidate for an entity, or none."""
        ...

    async def is_newly_introduced(self, occurrences: list[OccurrenceContext]) -> bool:
        """True if the text frames the entity as a first encounter."""
        ...

    async def is_same_name(self, name_a: str, name_b: str) -> bool:
        """True if two strings are the same name with different spelling."""
        ...


# ── Prompts ──────────────────────────────────────────────────────────────────

TAGGING_SYSTEM_PROMPT = """\
You are an entity-tagging assistant with strong coreference resolution.
Your task is to insert <entity> tags around every mention of the entity types \
listed in the user message, in markdown text.

Instructions:
1. Identify every reference to any of the listed entity types.
2. Wrap each mention with <entity> tags, adding:
   - `id`: the entity's most complete/canonical name as mentioned anywhere in the text
   - `type`: one of the listed entity types
   Example: I watched <entity id="Inception" type="movie">Inception</entity> with \
<entity id="F. Scott Fitzgerald" type="person">Scott</entity>.
3. Use coreference to group different surface forms of the same entity under one id.
4. If the same surface form refers to different entities in different parts of the \
text, treat them as separate entities.
5. Do not tag pronouns (he/she/they/it) or generic references.
6. Preserve the original text exactly. Only insert <entity> tags; remove or change nothing.

Return the entire markdown input with <entity> tags added and nothing else.
"""

NARROWING_SYSTEM_PROMPT = """\
You are an expert at matching entities by name, even with alternate spellings.
Given a list of target entities and a shared list of candidates, return for each \
entity the ids of the candidates that are plausible name matches.

Rules:
- If an entity has a full name, only include candidates whose name is a plausible \
alternate spelling of that full name.
- If an entity is only referenced by a short or partial name, include all candidates \
that could match. Do not guess between them.
- Do not include candidates whose names are clearly different, even if they share words.
- Return one result per entity, using its entity_name exactly as given.
"""

DISAMBIGUATION_SYSTEM_PROMPT = """\
You are an entity-to-record resolver.

Given:
- The contexts in which an entity appears in the current text (the mention itself \
is replaced by <entity/>)
- A list of candidate records, each with the contexts in which it was referenced before

Pick the one candidate that is the most likely match for the entity.

Weigh the signals in this order:
1. Recency: days_since_last_reference, lower is better (null means never referenced).
2. Popularity: higher is better.
3. Contextual similarity between the current contexts and the candidate's past contexts.

Pay no attention to spelling; it is not important.
If you are really unsure, return a null candidate_id. Otherwise choose the best \
candidate and grade your confidence as certain, likely or uncertain.
"""

NEWLY_INTRODUCED_SYSTEM_PROMPT = """\
You judge whether a text introduces a person for the first time.
The person's name is replaced by <entity/> in each context.
Answer true only if the text explicitly frames this as a first encounter \
(e.g. "met <entity/> for the first time", "a new colleague, <entity/>").
If it is ambiguous, answer false.
"""

SAME_NAME_SYSTEM_PROMPT = """\
You judge whether two strings are the same personal name written with a different \
spelling (including transcription errors and nicknames of the same form).
Answer false for names that are clearly different names.
"""


# ── Agent factories ──────────────────────────────────────────────────────────


def _model(model_name: str) -> OpenAIChatModel:
    return OpenAIChatModel(
        model_name,
        provider=OpenAIProvider(
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
        ),
    )


def create_tagging_agent() -> Agent[None, str]:
    """Create the tagging agent (plain text output)."""
    return Agent(
        _model(settings.model_tagging),
        output_type=str,
        system_prompt=TAGGING_SYSTEM_PROMPT,
        model_settings=ModelSettings(temperature=0),
        retries=settings.llm_retries,
    )


def create_narrowing_agent() -> Agent[None, NarrowingVerdict]:
    """Create the batched name-narrowing agent."""
    return Agent(
        _model(settings.model_narrowing),
        output_type=NativeOutput(NarrowingVerdict),
        system_prompt=NARROWING_SYSTEM_PROMPT,
        model_settings=ModelSettings(temperature=0),
        retries=settings.llm_retries,
    )


def create_disambiguation_agent() -> Agent[None, DisambiguationVerdict]:
    """Create the candidate disambiguation agent."""
    return Agent(
        _model(settings.model_disambiguation),
        output_type=NativeOutput(DisambiguationVerdict),
        system_prompt=DISAMBIGUATION_SYSTEM_PROMPT,
        retries=settings.llm_retries,
    )


def create_newly_introduced_agent() -> Agent[None, NewlyIntroducedVerdict]:
    return Agent(
        _model(settings.model_heuristic),
        output_type=NativeOutput(NewlyIntroducedVerdict),
        system_prompt=NEWLY_INTRODUCED_SYSTEM_PROMPT,
        model_settings=ModelSettings(temperature=0),
        retries=settings.llm_retries,
    )


def create_same_name_agent() -> Agent[None, SameNameVerdict]:
    return Agent(
        _model(settings.model_heuristic),
        output_type=NativeOutput(SameNameVerdict),
        system_prompt=SAME_NAME_SYSTEM_PROMPT,
        model_settings=ModelSettings(temperature=0),
        retries=settings.llm_retries,
    )


class LLMSemanticServices:
    """SemanticServices backed by pydantic-ai agents.

    Usage:
        services = LLMSemanticServices()
        verdict = await services.narrow(request)
    """

    def __init__(self) -> None:
        self._tagging_agent = create_tagging_agent()
        self._narrowing_agent = create_narrowing_agent()
        self._disambiguation_agent = create_disambiguation_agent()
        self._newly_introduced_agent = create_newly_introduced_agent()
        self._same_name_agent = create_same_name_agent()

    async def _run(
        self,
        service: str,
        agent: Agent[None, OutputT],
        prompt: str,
    ) -> OutputT:
        try:
            result = await agent.run(prompt)
        except (AgentRunError, APIError) as e:
            raise ServiceError(service, str(e)) from e
        return result.output

    async def tag(self, text: str, entity_types: list[EntityTypeConfig]) -> str:
        type_list = ", ".join(f'"{et.type}"' for et in entity_types)
        type_descriptions = "\n".join(
            f'- "{et.type}"' + (f": {et.description}" if et.description else "")
            for et in entity_types
        )
        prompt = (
            f"Tag every mention of the following entity types: {type_list}.\n"
            "Do not tag pronouns or vague references.\n\n"
            f"Entity types:\n{type_descriptions}\n\n"
            "Text:\n"
            f"{text}"
        )
        try:
            output = await self._run("tagging", self._tagging_agent, prompt)
        except ServiceError as e:
            raise TaggingError(str(e)) from e
        return output.strip()

    async def narrow(self, request: NarrowingRequest) -> NarrowingVerdict:
        prompt = self._build_narrowing_prompt(request)
        return await self._run("narrowing", self._narrowing_agent, prompt)

    async def disambiguate(self, request: DisambiguationRequest) -> DisambiguationVerdict:
        prompt = (
            "Occurrences in this text:\n"
            f"{json.dumps([o.model_dump() for o in request.occurrences], indent=2)}\n\n"
            "Candidates:\n"
            f"{json.dumps([c.model_dump() for c in request.candidates], indent=2)}\n"
        )
        return await self._run("disambiguation", self._disambiguation_agent, prompt)

    async def is_newly_introduced(self, occurrences: list[OccurrenceContext]) -> bool:
        prompt = "Contexts:\n" + "\n".join(
            f"- [{o.header or 'no heading'}] {o.sentence}" for o in occurrences
        )
        verdict = await self._run("newly_introduced", self._newly_introduced_agent, prompt)
        return verdict.newly_introduced

    async def is_same_name(self, name_a: str, name_b: str) -> bool:
        prompt = f"Name A: {json.dumps(name_a)}\nName B: {json.dumps(name_b)}"
        verdict = await self._run("same_name", self._same_name_agent, prompt)
        return verdict.same_name

    def _build_narrowing_prompt(self, request: NarrowingRequest) -> str:
        parts = ["Entities:\n"]
        for entity in request.entities:
            parts.append(
                f"  - entity_name: {json.dumps(entity.entity_name)}, "
                f"display_names: {json.dumps(entity.display_names)}\n"
            )
        parts.append("\nCandidates:\n")
        for candidate in request.candidates:
            parts.append(f"  - {candidate.candidate_id}: [{', '.join(candidate.names)}]\n")
        return "".join(parts)
