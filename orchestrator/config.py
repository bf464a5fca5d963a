"""
Orchestration configuration loader.

Parses the YAML artifact into ``OrchestrationConfig`` with dacite and then
checks reference integrity. Any problem is fatal: ``ConfigurationError``.

Artifact layout::

    providers:            # id -> provider
      perplexity:
        name: Perplexity
        capabilities: [research]
        endpoint: {type: stdio, command: npx, args: [...]}
        tools:
          perplexity_ask: {description: ..., use_cases: [...]}
    routing_rules:        # ordered, first match wins
      - name: research
        condition: {task_type: [research]}
        action:
          provider: perplexity
          tool: perplexity_ask
          fallback: {provider: poe, tool: ask}
      - name: full_stack
        condition: {task_type: [feature]}
        action:
          sequence:
            - {provider: context7, tool: get_library_docs, pass_result_to_next: true}
    workflows:            # name -> workflow
      bug_fix:
        description: ...
        triggers: [bug, fix]
        steps:
          - {name: analyze, provider: perplexity, tool: perplexity_ask}
    fallback_strategies: [...]
    integration_settings: {result_caching: true, cache_duration: 300}
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml
from dacite import Config, DaciteError, from_dict

from orchestrator.exceptions import ConfigurationError
from orchestrator.models import OrchestrationConfig, SingleCall
from orchestrator.workflow.conditions import StepCondition
from utils.logger import get_logger

logger = get_logger(__name__)

CONFIG_ENV_VAR = "ORCHESTRATOR_CONFIG"
DEFAULT_CONFIG_FILE = Path(__file__).parents[1] / "config" / "orchestration.yaml"

# YAML writes whole numbers as ints; float fields accept them
_DACITE_CONFIG = Config(strict=True, cast=[float])


def resolve_config_path(path: str | Path | None = None) -> Path:
    return Path(path or os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE)


def load_config(path: str | Path | None = None) -> OrchestrationConfig:
    """Load, parse and validate the orchestration artifact."""
    config_path = resolve_config_path(path)
    config = parse_config(read_config_file(config_path))
    logger.info(
        "orchestration_config_loaded",
        path=str(config_path),
        providers=len(config.providers),
        rules=len(config.routing_rules),
        workflows=len(config.workflows),
    )
    return config


def read_config_file(path: str | Path) -> Any:
    """Return the raw YAML document at ``path``."""
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigurationError(f"Orchestration config not found: {config_path}")
    try:
        return yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e


def build_config(raw: Any) -> OrchestrationConfig:
    """Typed config from an already-parsed mapping. References are not checked."""
    if not isinstance(raw, dict):
        raise ConfigurationError("Orchestration config must be a mapping at the top level")

    data = dict(raw)
    data["providers"] = _keyed(data.get("providers"), "id", "providers")
    data["workflows"] = _keyed(data.get("workflows"), "name", "workflows")
    data.setdefault("routing_rules", [])

    try:
        return from_dict(OrchestrationConfig, data, config=_DACITE_CONFIG)
    except DaciteError as e:
        raise ConfigurationError(f"Invalid orchestration config: {e}") from e


def parse_config(raw: Any) -> OrchestrationConfig:
    """Build typed config and validate its references."""
    config = build_config(raw)
    errors, warnings = validate_references(config)
    for warning in warnings:
        logger.warning("orchestration_config_warning", warning=warning)
    if errors:
        raise ConfigurationError("Orchestration config has broken references", problems=errors)
    return config


def _keyed(section: Any, key_field: str, section_name: str) -> Dict[str, Any]:
    """Inject each mapping key into its body, e.g. ``providers.linear`` -> ``id: linear``."""
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{section_name}' must be a mapping")
    out: Dict[str, Any] = {}
    for key, body in section.items():
        if not isinstance(body, dict):
            raise ConfigurationError(f"'{section_name}.{key}' must be a mapping")
        declared = body.get(key_field)
        if declared is not None and declared != key:
            raise ConfigurationError(f"'{section_name}.{key}' declares mismatching {key_field} '{declared}'")
        out[key] = {**body, key_field: key}
    return out


def validate_references(config: OrchestrationConfig) -> Tuple[List[str], List[str]]:
    """Check that rules and workflows only name things that exist.

    Returns tuple of (errors, warnings).
    """
    errors: List[str] = []
    warnings: List[str] = []

    def check_target(where: str, provider_id: str, tool: str) -> None:
        provider = config.providers.get(provider_id)
        if provider is None:
            errors.append(f"{where}: unknown provider '{provider_id}'")
        elif provider.tools and tool not in provider.tools:
            errors.append(f"{where}: provider '{provider_id}' has no tool '{tool}'")

    rule_names = set()
    for rule in config.routing_rules:
        where = f"routing_rules[{rule.name}]"
        if rule.name in rule_names:
            warnings.append(f"{where}: duplicate rule name")
        rule_names.add(rule.name)

        if isinstance(rule.action, SingleCall):
            check_target(where, rule.action.provider, rule.action.tool)
            if rule.action.fallback is not None:
                check_target(f"{where}.fallback", rule.action.fallback.provider, rule.action.fallback.tool)
        else:
            if not rule.action.sequence:
                errors.append(f"{where}: sequence is empty")
            for i, step in enumerate(rule.action.sequence):
                check_target(f"{where}.sequence[{i}]", step.provider, step.tool)

    for name, workflow in config.workflows.items():
        if not workflow.steps:
            errors.append(f"workflows[{name}]: no steps declared")
        seen: List[str] = []
        for step in workflow.steps:
            where = f"workflows[{name}].{step.name}"
            if step.name in seen:
                errors.append(f"{where}: duplicate step name")
            check_target(where, step.provider, step.tool)
            for dep in step.context_from:
                if dep not in seen:
                    errors.append(f"{where}: context_from '{dep}' is not an earlier step")
            if step.resource_from is not None and step.resource_from not in seen:
                errors.append(f"{where}: resource_from '{step.resource_from}' is not an earlier step")
            if step.condition is not None and not StepCondition.is_known(step.condition):
                warnings.append(f"{where}: unknown condition '{step.condition}' always evaluates true")
            seen.append(step.name)

    settings = config.integration_settings
    if settings.cache_duration < 0:
        errors.append("integration_settings.cache_duration must not be negative")
    if settings.default_timeout is not None and settings.default_timeout <= 0:
        errors.append("integration_settings.default_timeout must be positive")
    if settings.max_concurrent_calls < 1:
        errors.append("integration_settings.max_concurrent_calls must be at least 1")

    return errors, warnings
