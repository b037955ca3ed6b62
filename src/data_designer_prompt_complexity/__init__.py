# SPDX-License-Identifier: Apache-2.0
"""Prompt complexity plugin for NeMo Data Designer.

Adds a ``prompt-complexity`` column type that scores every line of a prompt for
structural properties that are hard on language models (character entropy,
long tokens, symbol noise, poor compressibility, step spam, positional bias).
No LLM calls, no tokenizer: every metric is a cheap character-level proxy.

Usage::

    from data_designer_prompt_complexity import PromptComplexityColumnConfig

    builder.add_column(PromptComplexityColumnConfig(
        name="prompt_check",
        target_columns=["prompt"],
        fail_on="high",
    ))

The engine is usable on its own::

    from data_designer_prompt_complexity import analyze_lines

    for finding in analyze_lines(prompt.splitlines()):
        print(finding.line, finding.severity.value, finding.message)
"""

from data_designer_prompt_complexity.config import PromptComplexityColumnConfig
from data_designer_prompt_complexity.core import (
    Finding,
    Flag,
    Severity,
    Thresholds,
    analyze_lines,
    score_lines,
)
from data_designer_prompt_complexity.host import analyze_text

__all__ = [
    "PromptComplexityColumnConfig",
    "analyze_lines",
    "analyze_text",
    "score_lines",
    "Finding",
    "Flag",
    "Severity",
    "Thresholds",
]
