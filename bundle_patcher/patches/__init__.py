"""
Patch writers and the registry that orders them.

Every writer has the shape ``write_<name>(text, ...) -> str | None``; the
registry binds each one to its settings through a ``(text, ctx)`` adapter.
``None`` means the writer's pattern was not found.  Prompts run first since
their templates are matched against stock text.
"""

from __future__ import annotations

from ..editing.patch_applier import PatchContext, PatchSpec
from . import branding, context_limit, models, system_prompts, themes, thinker, toggles
from . import toolsets as toolsets_patch
from . import user_message


def _system_prompts(text: str, ctx: PatchContext):
    if not ctx.prompts:
        return text
    results = system_prompts.PromptResults()
    new_text = system_prompts.write_system_prompts(text, ctx.prompts, results=results)
    if ctx.report is not None:
        ctx.report.prompts_matched.extend(results.matched)
        ctx.report.prompts_missed.extend(results.missed)
        ctx.report.prompts_rejected.extend(results.rejected)
        ctx.report.applied_hashes.update(results.applied_hashes)
        summary = results.summary()
        if summary:
            ctx.report.items.append(summary)
    return new_text


def _version_output(text: str, ctx: PatchContext):
    from .. import __version__
    return branding.write_version_output(text, __version__)


def _misc(flag: str):
    return lambda s: getattr(s.misc, flag)


REGISTRY: list[PatchSpec] = [
    PatchSpec("system_prompts", _system_prompts,
              enabled=lambda s: True, group="prompts"),
    PatchSpec("themes", lambda t, c: themes.write_themes(t, c.settings.themes),
              enabled=lambda s: bool(s.themes), group="themes"),
    PatchSpec("signin_banner", lambda t, c: branding.write_signin_banner(t, c.settings.banner_text),
              enabled=lambda s: bool(s.banner_text), group="branding"),
    PatchSpec("welcome_message", lambda t, c: branding.write_welcome_message(t, c.settings.welcome_text),
              enabled=lambda s: bool(s.welcome_text), group="branding"),
    PatchSpec("thinker_verbs",
              lambda t, c: thinker.write_thinker_verbs(t, c.settings.thinking_verbs.verbs),
              enabled=lambda s: s.thinking_verbs is not None, group="thinking"),
    PatchSpec("thinker_format",
              lambda t, c: thinker.write_thinker_format(t, c.settings.thinking_verbs.format),
              enabled=lambda s: s.thinking_verbs is not None, group="thinking"),
    PatchSpec("thinker_symbol_chars",
              lambda t, c: thinker.write_thinker_symbol_chars(t, c.settings.thinking_style.phases),
              group="thinking"),
    PatchSpec("thinker_symbol_speed",
              lambda t, c: thinker.write_thinker_symbol_speed(
                  t, c.settings.thinking_style.update_interval),
              group="thinking"),
    PatchSpec("thinker_symbol_width",
              lambda t, c: thinker.write_thinker_symbol_width(t, c.settings.thinking_style.phases),
              group="thinking"),
    PatchSpec("thinker_symbol_mirror",
              lambda t, c: thinker.write_thinker_symbol_mirror(
                  t, c.settings.thinking_style.reverse_mirror),
              group="thinking"),
    PatchSpec("user_message_display",
              lambda t, c: user_message.write_user_message_display(
                  t, c.settings.user_message_display),
              enabled=lambda s: s.user_message_display is not None, group="display"),
    PatchSpec("input_box_border",
              lambda t, c: user_message.write_input_box_border(
                  t, c.settings.input_box.remove_border),
              enabled=lambda s: s.input_box.remove_border, group="display"),
    PatchSpec("verbose_property", lambda t, c: toggles.write_verbose_property(t),
              enabled=_misc("force_verbose")),
    PatchSpec("spinner_no_freeze", lambda t, c: thinker.write_spinner_no_freeze(t),
              enabled=_misc("spinner_no_freeze"), group="thinking"),
    PatchSpec("context_limit", lambda t, c: context_limit.write_context_limit(t),
              enabled=_misc("context_limit_override")),
    PatchSpec("model_selector", lambda t, c: models.write_model_selector(t),
              enabled=_misc("custom_models"), group="models"),
    PatchSpec("known_model_names", lambda t, c: models.write_known_model_names(t),
              enabled=_misc("custom_model_aliases"), group="models"),
    PatchSpec("model_switch_mapping", lambda t, c: models.write_model_switch_mapping(t),
              enabled=_misc("custom_model_aliases"), group="models"),
    PatchSpec("subagent_models",
              lambda t, c: models.write_subagent_models(t, c.settings.subagent_models),
              enabled=lambda s: s.subagent_models.any_set(), group="models"),
    PatchSpec("show_more_items",
              lambda t, c: toggles.write_show_more_items(t, c.settings.misc.visible_option_count),
              enabled=_misc("show_more_items_in_select_menus")),
    PatchSpec("ignore_max_subscription", lambda t, c: toggles.write_ignore_max_subscription(t),
              enabled=_misc("ignore_max_subscription")),
    PatchSpec("suppress_rate_limit_options",
              lambda t, c: toggles.write_suppress_rate_limit_options(t),
              enabled=_misc("suppress_rate_limit_options")),
    PatchSpec("hide_startup_banner", lambda t, c: toggles.write_hide_startup_banner(t),
              enabled=_misc("hide_startup_banner")),
    PatchSpec("hide_ctrl_g_to_edit", lambda t, c: toggles.write_hide_ctrl_g_to_edit(t),
              enabled=_misc("hide_ctrl_g_to_edit")),
    PatchSpec("hide_ctrl_g_to_edit_prompt",
              lambda t, c: toggles.write_hide_ctrl_g_to_edit_prompt(t),
              enabled=_misc("hide_ctrl_g_to_edit")),
    PatchSpec("increase_file_read_limit", lambda t, c: toggles.write_increase_file_read_limit(t),
              enabled=_misc("increase_file_read_limit")),
    PatchSpec("suppress_line_numbers", lambda t, c: toggles.write_suppress_line_numbers(t),
              enabled=_misc("suppress_line_numbers")),
    PatchSpec("thinking_visibility", lambda t, c: toggles.write_thinking_visibility(t),
              enabled=_misc("thinking_visibility")),
    PatchSpec("toolsets",
              lambda t, c: toolsets_patch.write_toolsets(
                  t, c.settings.toolsets, c.settings.default_toolset),
              enabled=lambda s: bool(s.toolsets), group="toolsets"),
    PatchSpec("version_output", _version_output,
              enabled=_misc("show_version"), group="branding"),
]


def get_spec(name: str) -> PatchSpec:
    for spec in REGISTRY:
        if spec.name == name:
            return spec
    raise KeyError(name)
