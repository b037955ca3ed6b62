from __future__ import annotations

from typing import Literal

from pydantic import Field

from data_designer.config.column_configs import SingleColumnConfig


class PromptComplexityColumnConfig(SingleColumnConfig):
    """Flag prompt lines that are structurally hard for a language model to consume.

    Each row's target columns are joined with newlines and every line is scored
    for entropy, token length, symbol noise, compressibility, step spam and
    positional bias. The output holds per-severity counts and, optionally, the
    composed findings with remediation text.

    Attributes:
        target_columns: Columns whose text content will be joined and analyzed.
        fail_on: Lowest finding severity that makes a row invalid. ``"high"``
            (default) tolerates warnings; ``"warning"`` rejects any finding.
        include_messages: Include the findings (line, span, flags, message) in output.
        include_metrics: Include the raw metric vector of every analyzed line.
    """

    target_columns: list[str]
    fail_on: Literal["warning", "high"] = Field(default="high", description="Lowest severity that marks a row invalid")
    include_messages: bool = Field(default=True, description="Include composed findings in output")
    include_metrics: bool = Field(default=False, description="Include per-line metric vectors in output")
    column_type: Literal["prompt-complexity"] = "prompt-complexity"

    @staticmethod
    def get_column_emoji() -> str:
        return "\U0001f9e9"

    @property
    def required_columns(self) -> list[str]:
        return self.target_columns

    @property
    def side_effect_columns(self) -> list[str]:
        return []
