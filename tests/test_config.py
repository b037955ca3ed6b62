import pytest
from pydantic import ValidationError

from data_designer_prompt_complexity.config import PromptComplexityColumnConfig


class TestPromptComplexityColumnConfig:
    def test_defaults(self):
        config = PromptComplexityColumnConfig(name="prompt_check", target_columns=["prompt"])
        assert config.column_type == "prompt-complexity"
        assert config.fail_on == "high"
        assert config.include_messages is True
        assert config.include_metrics is False
        assert config.required_columns == ["prompt"]
        assert config.side_effect_columns == []

    def test_rejects_unknown_severity(self):
        with pytest.raises(ValidationError):
            PromptComplexityColumnConfig(name="prompt_check", target_columns=["prompt"], fail_on="medium")
