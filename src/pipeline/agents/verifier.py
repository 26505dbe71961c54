# src/pipeline/agents/verifier.py — v1
"""Candidate verifier: annotate candidates with profile-quality signals.

Non-destructive: returns annotated copies in the same order and never
drops a candidate.
"""

from __future__ import annotations

from expertmesh.config.agents import VERIFIER
from expertmesh.core.models import CandidateProfile, VerificationDetails
from expertmesh.pipeline.plugin_kit.base_agent import BaseAgent


def verification_for(candidate: CandidateProfile) -> VerificationDetails:
    return VerificationDetails(
        profile_complete=bool(candidate.bio) and bool(candidate.skills),
        has_external_links=bool(
            candidate.linkedin or candidate.github or candidate.stackoverflow
        ),
        availability_confirmed=candidate.is_available,
    )


class CandidateVerifierAgent(BaseAgent):
    """Attach verification details to every retrieved candidate."""

    @property
    def name(self) -> str:
        return VERIFIER

    @property
    def description(self) -> str:
        return "Check profile completeness, external links and availability"

    async def execute(self, inp: list[CandidateProfile]) -> list[CandidateProfile]:
        return await self.verify(inp)

    async def verify(
        self, candidates: list[CandidateProfile]
    ) -> list[CandidateProfile]:
        verified = [
            c.model_copy(
                update={"verified": True, "verification": verification_for(c)}
            )
            for c in candidates
        ]
        available = sum(1 for c in verified if c.verification.availability_confirmed)
        await self.log(
            f"Verified {len(verified)} candidates, {available} available",
            {"count": len(verified), "available": available},
        )
        return verified
