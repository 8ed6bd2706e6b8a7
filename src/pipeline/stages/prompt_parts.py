# src/pipeline/stages/prompt_parts.py - v1
"""Prompt fragments shared by several stages."""

from __future__ import annotations

from wavebrief.context.models import ChatMessage, Context
from wavebrief.core.models import Artifact


def case_header(context: Context) -> str:
    case = context.case
    lines = [
        f"Case: {case.case_name}",
        f"Court: {case.court_level}",
    ]
    if case.constitutional_question:
        lines.append(f"Constitutional question: {case.constitutional_question}")
    return "\n".join(lines)


def strategy_chat(messages: tuple[ChatMessage, ...]) -> str:
    return "\n\n".join(
        f"--- {'ATTORNEY' if m.role == 'user' else 'CONSTITUTIONAL EXPERT'} ---\n{m.content}"
        for m in messages
    )


def current_brief(prior: Artifact) -> str:
    return f"=== CURRENT BRIEF ({prior.word_count} words) ===\n{prior.content}"


def inclusion_rule(context: Context) -> str:
    if context.config.aggressive_inclusion:
        return "Integrate every relevant source below, even briefly."
    return "Integrate only the sources that materially strengthen the argument."
