"""
Stage 2: Signal Classification
==============================
Decides whether an ICP-matched event is a genuine buying signal.

The primary path asks a hosted language model for a JSON classification.
Any transport error or unparseable response falls through to a
deterministic keyword classifier, so classify() never raises.
"""

import json
import logging
import math
import re
import time
from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Any, Dict, List, Optional, Protocol

from ..config.settings import (
    BUYING_STAGE_PATTERNS,
    CATEGORY_KEYWORDS,
    CLASSIFIER_SYSTEM_PROMPT,
    FALLBACK_CONFIDENCE_PER_MATCH,
    FALLBACK_MAX_CONFIDENCE,
    FALLBACK_SUGGESTED_ACTIONS,
    LLM_CONFIG,
)
from ..errors import ClassificationError
from ..models.schemas import (
    BuyingStage,
    RawEvent,
    SignalCategory,
    SignalClassification,
    SignalStrength,
)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_STAGE_REGEXES = [
    (BuyingStage(stage), re.compile(pattern, re.IGNORECASE))
    for stage, pattern in BUYING_STAGE_PATTERNS
]


class LLMClient(Protocol):
    """Minimal contract for a chat-style language model"""

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...


class OpenAIChatClient:
    """OpenAI SDK client, used for both OpenRouter and OpenAI"""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        default_headers: Optional[Dict[str, str]] = None,
        max_tokens: int = 512,
        temperature: float = 0.2,
    ):
        from openai import OpenAI

        kwargs: Dict[str, Any] = {"api_key": api_key}
        if base_url:
            kwargs["base_url"] = base_url
        if default_headers:
            kwargs["default_headers"] = default_headers
        self._client = OpenAI(**kwargs)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return response.choices[0].message.content or ""


class AnthropicChatClient:
    """Anthropic SDK client"""

    def __init__(self, api_key: str, model: str, max_tokens: int = 512):
        from anthropic import Anthropic

        self._client = Anthropic(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        response = self._client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        block = response.content[0] if response.content else None
        if block is None or getattr(block, "type", None) != "text":
            return ""
        return block.text


class SignalClassifier:
    """
    Stage 2: Classify events as buying signals via LLM, with rule-based fallback.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[LLMClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the classifier.

        Args:
            api_key: API key for the LLM provider; without one (and without
                an injected client) every event uses the fallback path
            provider: "openrouter", "openai", or "anthropic"
            model: Model identifier for the provider
            client: Pre-built client (takes precedence over api_key/provider)
            logger: Logger to report to
        """
        self.logger = logger or logging.getLogger(__name__)
        self.api_key = api_key if api_key is not None else LLM_CONFIG.get("api_key")
        self.provider = provider or LLM_CONFIG.get("provider", "openrouter")
        self.model = model or LLM_CONFIG.get("model")
        self.client = client

        self._stats_lock = Lock()
        self.stats = {"llm": 0, "fallback": 0, "errors": 0}

        if self.client is None:
            self._initialize_client()

    def _initialize_client(self):
        """Initialize the LLM client based on provider"""
        if not self.api_key:
            self.logger.info("No LLM API key configured; using rule-based classification")
            return

        max_tokens = LLM_CONFIG.get("max_tokens", 512)
        if self.provider == "openrouter":
            self.client = OpenAIChatClient(
                api_key=self.api_key,
                model=self.model,
                base_url=LLM_CONFIG.get("base_url"),
                default_headers={
                    "HTTP-Referer": LLM_CONFIG.get("site_url", ""),
                    "X-Title": LLM_CONFIG.get("app_name", ""),
                },
                max_tokens=max_tokens,
                temperature=LLM_CONFIG.get("temperature", 0.2),
            )
        elif self.provider == "openai":
            self.client = OpenAIChatClient(
                api_key=self.api_key,
                model=self.model,
                max_tokens=max_tokens,
                temperature=LLM_CONFIG.get("temperature", 0.2),
            )
        elif self.provider == "anthropic":
            self.client = AnthropicChatClient(
                api_key=self.api_key, model=self.model, max_tokens=max_tokens
            )
        else:
            raise ValueError(f"Unknown provider: {self.provider}")

    # =========================================================================
    # Public API
    # =========================================================================

    def classify(self, event: RawEvent) -> SignalClassification:
        """
        Classify a single event. Never raises.

        Args:
            event: Raw event that passed ICP matching

        Returns:
            SignalClassification from the LLM, or from the fallback path
        """
        if self.client is None:
            self._bump("fallback")
            return self.fallback_classification(event)

        start_time = time.time()
        try:
            text = self.client.complete(CLASSIFIER_SYSTEM_PROMPT, self.build_prompt(event))
            result = self.parse_response(text)
            self._bump("llm")
            self.logger.debug(
                "Classified %s via LLM in %.0fms",
                event.id,
                (time.time() - start_time) * 1000,
            )
            return result
        except Exception as e:
            self._bump("errors")
            self._bump("fallback")
            self.logger.error("Signal classification failed for %s: %s", event.id, e)
            return self.fallback_classification(event)

    def classify_batch(
        self, events: List[RawEvent], concurrency: int = 5
    ) -> Dict[str, SignalClassification]:
        """
        Classify events in sequential chunks of `concurrency` parallel calls.

        Returns:
            Mapping of event id to classification
        """
        results: Dict[str, SignalClassification] = {}
        size = max(1, concurrency)

        for start in range(0, len(events), size):
            chunk = events[start:start + size]
            with ThreadPoolExecutor(max_workers=len(chunk)) as executor:
                for event, classification in zip(chunk, executor.map(self.classify, chunk)):
                    results[event.id] = classification

        return results

    def build_prompt(self, event: RawEvent) -> str:
        """Render the user message for one event"""
        parts = [f"Source: {event.source.value} ({event.content_type})"]
        if event.author:
            parts.append(f"Author: {event.author}")
        if event.author_role:
            parts.append(f"Author Role: {event.author_role}")
        if event.company_hint:
            parts.append(f"Company: {event.company_hint}")
        if event.title:
            parts.append(f"Title: {event.title}")
        parts.append(f"Content:\n{event.body}")
        return "\n".join(parts)

    def parse_response(self, response: str) -> SignalClassification:
        """
        Parse the first JSON object in a model response.

        Raises:
            ClassificationError: if no JSON object can be decoded
        """
        match = _JSON_OBJECT.search(response or "")
        if not match:
            raise ClassificationError("No JSON found in response")

        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise ClassificationError(f"Malformed JSON in response: {e}") from e

        if not isinstance(data, dict):
            raise ClassificationError("Response JSON is not an object")

        return SignalClassification(
            is_signal=bool(data.get("isSignal")),
            confidence=_clamp_confidence(data.get("confidence")),
            category=_coerce_enum(SignalCategory, data.get("category"), SignalCategory.GENERAL_OPERATIONS),
            strength=_coerce_enum(SignalStrength, data.get("strength"), SignalStrength.WEAK),
            buying_stage=_coerce_enum(BuyingStage, data.get("buyingStage"), BuyingStage.AWARENESS),
            reasoning=str(data.get("reasoning") or ""),
            keywords=_string_list(data.get("keywords")),
            suggested_actions=_string_list(data.get("suggestedActions")),
        )

    # =========================================================================
    # Fallback
    # =========================================================================

    def fallback_classification(self, event: RawEvent) -> SignalClassification:
        """Classify using keyword rules when the LLM is unavailable"""
        text = event.text

        best_category = SignalCategory.GENERAL_OPERATIONS
        best_score = 0
        keywords: List[str] = []

        for category, terms in CATEGORY_KEYWORDS.items():
            score = 0
            for term in terms:
                if term in text:
                    score += 1
                    keywords.append(term)
            if score > best_score:
                best_score = score
                best_category = SignalCategory(category)

        is_signal = best_score >= 1
        confidence = round(min(best_score * FALLBACK_CONFIDENCE_PER_MATCH, FALLBACK_MAX_CONFIDENCE), 2)

        if best_score >= 3:
            strength = SignalStrength.STRONG
        elif best_score >= 2:
            strength = SignalStrength.MODERATE
        else:
            strength = SignalStrength.WEAK

        return SignalClassification(
            is_signal=is_signal,
            confidence=confidence,
            category=best_category,
            strength=strength,
            buying_stage=self.infer_buying_stage(text),
            reasoning=(
                f"Fallback classification: matched {best_score} keyword(s) "
                f"in {best_category.value}"
            ),
            keywords=keywords,
            suggested_actions=list(FALLBACK_SUGGESTED_ACTIONS) if is_signal else [],
        )

    def infer_buying_stage(self, text: str) -> BuyingStage:
        """First matching stage pattern wins; awareness when none match"""
        for stage, regex in _STAGE_REGEXES:
            if regex.search(text):
                return stage
        return BuyingStage.AWARENESS

    # =========================================================================
    # Helpers
    # =========================================================================

    def get_stats(self) -> Dict[str, int]:
        with self._stats_lock:
            return dict(self.stats)

    def _bump(self, key: str):
        with self._stats_lock:
            self.stats[key] += 1


def _clamp_confidence(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return max(0.0, min(1.0, number))


def _coerce_enum(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except (TypeError, ValueError):
        return default


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]
