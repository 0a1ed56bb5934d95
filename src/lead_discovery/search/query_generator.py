"""Search query generation from a free-text business goal."""

import json
import logging
from typing import Any, Iterable, List, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from ..core.exceptions import QueryGenerationError
from ..core.logging import get_logger
from ..llm.client import ChatClient, parse_json_response
from ..models.query import (
    GeneratedQueries,
    QueryGenerationResult,
    QueryGeneratorOptions,
    QueryScore,
)

DEFAULT_MAX_QUERIES = 5
MAX_QUERIES_LIMIT = 20
DEFAULT_QUALITY_THRESHOLD = 0.7


GENERATION_PROMPT = """You generate web search queries for B2B prospecting.

From the user's business goal, work out:
1. The industry of the businesses they want as clients
2. The service they sell to those businesses
3. Up to {max_queries} search queries that surface websites of such businesses

{location_context}
{keyword_context}

Respond with JSON only:
{{
  "queries": ["query one", "query two"],
  "targetIndustry": "industry of the prospects",
  "serviceOffering": "service being sold",
  "location": "{location}",
  "metadata": {{
    "industryConfidence": 0.0,
    "serviceConfidence": 0.0,
    "suggestedKeywords": ["keyword"],
    "locationSpecific": false
  }}
}}
Confidence values are between 0 and 1."""

EXPANSION_PROMPT = """You broaden web search queries used to find {industry} businesses that may need {service}.

For the queries you are given, write variations using synonyms, industry terminology,
typical pain points, and different business sizes.

Respond with a JSON array of query strings only."""

SCORING_PROMPT = """You rate web search queries used to find {industry} businesses that may need {service}.

Score every query between 0 and 1 on relevance to the industry, likelihood of finding
businesses that need the service, and specificity.

Respond with a JSON array only:
[{{"query": "the query", "score": 0.0, "feedback": "one sentence"}}]"""


def clean_queries(queries: Iterable[Any]) -> List[str]:
    """Trim, drop blanks and non-strings, and dedupe preserving order."""
    seen = set()
    cleaned = []
    for query in queries:
        if not isinstance(query, str):
            continue
        query = query.strip()
        if query and query not in seen:
            seen.add(query)
            cleaned.append(query)
    return cleaned


class QueryGenerator:
    """
    Turns a business goal into search queries plus industry/service classification.

    Every failure, including an empty query set, is raised as
    ``QueryGenerationError``.
    """

    def __init__(
        self,
        chat_client: ChatClient,
        default_max_queries: int = DEFAULT_MAX_QUERIES,
        quality_threshold: float = DEFAULT_QUALITY_THRESHOLD,
        logger: Optional[logging.Logger] = None
    ):
        self.chat_client = chat_client
        self.default_max_queries = default_max_queries
        self.quality_threshold = quality_threshold
        self.logger = logger or get_logger("query_generator")

    def _validate_options(self, options: Optional[QueryGeneratorOptions]) -> QueryGeneratorOptions:
        options = options or QueryGeneratorOptions()
        max_queries = options.max_queries or self.default_max_queries
        return options.model_copy(update={
            "max_queries": min(max(1, max_queries), MAX_QUERIES_LIMIT),
            "location": options.location.strip() if options.location and options.location.strip() else None,
            "include_keywords": [k.strip() for k in options.include_keywords if k.strip()],
            "exclude_keywords": [k.strip() for k in options.exclude_keywords if k.strip()],
        })

    @staticmethod
    def _build_system_prompt(options: QueryGeneratorOptions) -> str:
        if options.location:
            location_context = f"Focus on businesses in or around {options.location}."
            if options.prioritize_local:
                location_context += " Prefer queries that name the location."
        else:
            location_context = "Do not restrict the queries to a location."

        keyword_parts = []
        if options.include_keywords:
            keyword_parts.append(f"Use these keywords where relevant: {', '.join(options.include_keywords)}.")
        if options.exclude_keywords:
            keyword_parts.append(f"Never use these keywords: {', '.join(options.exclude_keywords)}.")

        return GENERATION_PROMPT.format(
            max_queries=options.max_queries,
            location_context=location_context,
            keyword_context=" ".join(keyword_parts),
            location=options.location or ""
        )

    async def generate_queries(
        self,
        goal: str,
        options: Optional[QueryGeneratorOptions] = None
    ) -> QueryGenerationResult:
        """
        Generate search queries for a business goal.

        Args:
            goal: Free-text description of what the user sells and to whom
            options: Generation options

        Returns:
            QueryGenerationResult with at least one query

        Raises:
            QueryGenerationError: On any failure
        """
        options = self._validate_options(options)

        try:
            if not goal or not goal.strip():
                raise ValueError("Goal is required")

            response = await self.chat_client.create_chat_completion(
                [
                    {"role": "system", "content": self._build_system_prompt(options)},
                    {"role": "user", "content": f'Generate search queries for this business goal: "{goal.strip()}"'},
                ],
                temperature=0.7,
                max_tokens=750
            )
            generated = GeneratedQueries.model_validate(parse_json_response(response))

            queries = clean_queries(generated.queries)[:options.max_queries]
            if not queries:
                raise QueryGenerationError("No valid queries generated")

            if options.expand_queries:
                queries = await self._expand_queries(queries, generated.target_industry, generated.service_offering)
                queries = await self._score_queries(queries, generated.target_industry, generated.service_offering)
                queries = queries[:options.max_queries]
                if not queries:
                    raise QueryGenerationError("No valid queries generated")

        except QueryGenerationError as e:
            self.logger.error(f"Failed to generate queries for goal '{goal}': {e.cause}")
            raise
        except PydanticValidationError as e:
            self.logger.error(f"Query generation response failed validation for goal '{goal}': {e}")
            raise QueryGenerationError(f"Invalid response format: {e.error_count()} validation error(s)", e) from e
        except Exception as e:
            cause = getattr(e, "message", None) or str(e)
            self.logger.error(f"Failed to generate queries for goal '{goal}': {cause}")
            raise QueryGenerationError(cause, e) from e

        result = QueryGenerationResult(
            queries=queries,
            target_industry=generated.target_industry.strip(),
            service_offering=generated.service_offering.strip(),
            location=generated.location or options.location,
            metadata=generated.metadata
        )
        self.logger.info(
            f"Generated {len(result.queries)} queries for goal '{goal}' "
            f"(industry={result.target_industry}, service={result.service_offering})"
        )
        return result

    async def _expand_queries(self, queries: List[str], industry: str, service: str) -> List[str]:
        response = await self.chat_client.create_chat_completion(
            [
                {"role": "system", "content": EXPANSION_PROMPT.format(industry=industry, service=service)},
                {"role": "user", "content": json.dumps(queries)},
            ],
            temperature=0.8,
            max_tokens=750
        )
        expanded = parse_json_response(response)
        if not isinstance(expanded, list):
            raise ValueError("Query expansion did not return a JSON array")

        merged = clean_queries(list(queries) + expanded)
        self.logger.debug(f"Expanded {len(queries)} queries to {len(merged)}")
        return merged

    async def _score_queries(self, queries: List[str], industry: str, service: str) -> List[str]:
        response = await self.chat_client.create_chat_completion(
            [
                {"role": "system", "content": SCORING_PROMPT.format(industry=industry, service=service)},
                {"role": "user", "content": json.dumps(queries)},
            ],
            temperature=0.3,
            max_tokens=750
        )
        scores = TypeAdapter(List[QueryScore]).validate_python(parse_json_response(response))

        candidates = set(queries)
        best = {}
        for item in scores:
            query = item.query.strip()
            if query not in candidates:
                self.logger.debug(f"Ignoring score for unknown query '{query}'")
                continue
            if item.score >= self.quality_threshold:
                best[query] = max(item.score, best.get(query, 0.0))

        ranked = sorted(best.items(), key=lambda pair: pair[1], reverse=True)
        self.logger.debug(f"{len(ranked)}/{len(queries)} queries passed the {self.quality_threshold} threshold")
        return [query for query, _ in ranked]
