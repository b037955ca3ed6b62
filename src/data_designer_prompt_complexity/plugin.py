from data_designer.plugins.plugin import Plugin, PluginType

prompt_complexity_plugin = Plugin(
    config_qualified_name="data_designer_prompt_complexity.config.PromptComplexityColumnConfig",
    impl_qualified_name="data_designer_prompt_complexity.generator.PromptComplexityColumnGenerator",
    plugin_type=PluginType.COLUMN_GENERATOR,
)
