from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import data_designer.lazy_heavy_imports as lazy
from data_designer.engine.column_generators.generators.base import ColumnGeneratorFullColumn

from data_designer_prompt_complexity.config import PromptComplexityColumnConfig
from data_designer_prompt_complexity.core import Severity, compose_finding, is_reportable, score_lines
from data_designer_prompt_complexity.host import split_lines

if TYPE_CHECKING:
    import pandas as pd

logger = logging.getLogger(__name__)

_FAIL_ON = {"warning": {Severity.WARNING, Severity.HIGH}, "high": {Severity.HIGH}}


class PromptComplexityColumnGenerator(ColumnGeneratorFullColumn[PromptComplexityColumnConfig]):
    """Column generator that flags structurally complex prompt lines."""

    def generate(self, data: pd.DataFrame) -> pd.DataFrame:
        logger.info(f"\U0001f9e9 Scoring column {self.config.name!r} for prompt complexity")
        logger.info(f"   target columns: {self.config.target_columns}")
        logger.info(f"   fail_on: {self.config.fail_on}")

        failing = _FAIL_ON[self.config.fail_on]
        results = []
        for _, row in data[self.config.target_columns].iterrows():
            text = "\n".join(str(v) for v in row.values if not lazy.pd.isna(v))
            records = score_lines(split_lines(text))
            findings = [compose_finding(r) for r in records if is_reportable(r)]
            output: dict = {
                "is_valid": not any(f.severity in failing for f in findings),
                "finding_count": len(findings),
                "high_count": sum(1 for f in findings if f.severity is Severity.HIGH),
                "warning_count": sum(1 for f in findings if f.severity is Severity.WARNING),
                "max_score": round(max((f.score for f in findings), default=0.0), 2),
            }
            if self.config.include_messages:
                output["findings"] = [f.to_payload() for f in findings]
            if self.config.include_metrics:
                output["line_metrics"] = [r.metrics.to_payload() for r in records]
            results.append(output)

        data = data.copy()
        data[self.config.name] = results
        return data
