"""LLM-based token risk gate via an OpenAI-compatible chat API (Groq by default).

The oracle gets a fixed prompt with the token mint and answers in free text.
The score is the number after a "score" label, else the first bare number,
and must lie in 0-100. Every failure mode (HTTP error, timeout, empty or
unparseable reply) collapses into the fail-closed verdict: score 50, not
passed.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass

import httpx
from loguru import logger

from sniper.parsers.rate_limiter import RateLimiter

PROMPT_TEMPLATE = (
    "Analyze Solana token {token_id}: rug risks, honeypot, mint authority? "
    "Score 0-100."
)
FAIL_CLOSED_SCORE = 50
# "out of 100", "/100", "0-100": the scale, not a score
_SCALE_RE = re.compile(r"out\s+of\s+100\b|/\s*100\b|\b0\s*(?:-|–|to)\s*100\b", re.IGNORECASE)
_LABELED_SCORE_RE = re.compile(r"\bscore\b[^\d\n]{0,24}?\b(\d+)\b", re.IGNORECASE)
_NUMBER_RE = re.compile(r"\b(\d+)\b")


@dataclass(frozen=True)
class RiskVerdict:
    """Outcome of one risk check. Folded into the pool row, never stored alone."""

    score: int
    passed: bool
    rationale: str
    fallback: bool = False

    @classmethod
    def fail_closed(cls, reason: str) -> RiskVerdict:
        return cls(score=FAIL_CLOSED_SCORE, passed=False, rationale=reason, fallback=True)


def parse_score(content: str, token_id: str = "") -> int | None:
    """Extract the 0-100 score from the oracle reply.

    A number after a "score" label wins over the first bare number. The
    token id and scale phrases are removed first so their digits never count.
    Anything outside 0-100 is unparseable, not clamped.
    """
    text = content or ""
    if token_id:
        text = text.replace(token_id, " ")
    text = _SCALE_RE.sub(" ", text)

    match = _LABELED_SCORE_RE.search(text) or _NUMBER_RE.search(text)
    if match is None:
        return None
    score = int(match.group(1))
    if score > 100:
        return None
    return score


class RiskAnalyzerClient:
    """Token risk scoring through a chat-completions endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.groq.com/openai/v1",
        model: str = "llama3-70b-8192",
        threshold: int = 70,
        max_rps: float = 5.0,
    ) -> None:
        self._rate_limiter = RateLimiter(max_rps)
        self._model = model
        self._threshold = threshold
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=30.0,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    @property
    def threshold(self) -> int:
        return self._threshold

    async def analyze(self, token_id: str, *, timeout: float = 15.0) -> RiskVerdict:
        """Score a token. Never raises, never approves on failure."""
        try:
            content = await asyncio.wait_for(self._ask(token_id), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[RISK] Oracle timed out after {timeout:.0f}s for {token_id[:12]}")
            return RiskVerdict.fail_closed("Analysis failed: oracle timeout")
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(f"[RISK] Oracle call failed for {token_id[:12]}: {e}")
            return RiskVerdict.fail_closed(f"Analysis failed: {type(e).__name__}")

        score = parse_score(content, token_id)
        if score is None:
            logger.warning(f"[RISK] No score in oracle reply for {token_id[:12]}: {content[:120]!r}")
            return RiskVerdict.fail_closed("Analysis failed: unparseable reply")

        verdict = RiskVerdict(
            score=score,
            passed=score >= self._threshold,
            rationale=content.strip(),
        )
        logger.info(
            f"[RISK] {token_id[:12]} score={verdict.score} "
            f"{'PASS' if verdict.passed else 'FAIL'}"
        )
        return verdict

    async def _ask(self, token_id: str) -> str:
        await self._rate_limiter.acquire()
        resp = await self._client.post(
            "/chat/completions",
            json={
                "model": self._model,
                "messages": [
                    {"role": "user", "content": PROMPT_TEMPLATE.format(token_id=token_id)}
                ],
                "max_tokens": 100,
                "temperature": 0.1,
            },
        )
        resp.raise_for_status()
        data = resp.json()
        return str(data["choices"][0]["message"]["content"] or "")

    async def close(self) -> None:
        await self._client.aclose()
