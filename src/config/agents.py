# src/config/agents.py — v2
"""Declarative stage configuration for the matching pipeline.

Stage identifiers double as the ``agent`` field of conversation entries
and as the expected agent list stored on each task record.
"""

from __future__ import annotations

ORCHESTRATOR = "orchestrator"
ANALYST = "analyst"
RETRIEVER = "retriever"
VERIFIER = "verifier"
RANKER = "ranker"

# Execution order; each stage consumes the previous stage's output.
PIPELINE_STAGES: list[str] = [ANALYST, RETRIEVER, VERIFIER, RANKER]

# Answer mode; not part of the matching pipeline.
ANSWERER = "answerer"

# Agents expected to participate in one invocation (task record).
TASK_AGENTS: list[str] = [ORCHESTRATOR, *PIPELINE_STAGES]
