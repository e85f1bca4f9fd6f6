"""Pipeline execution module for running memory processing steps."""

import inspect
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from memory_canon import MemoryData

logger = logging.getLogger(__name__)

RESERVED_ARGUMENTS = {
    "memory_data",
    "validate_input",
    "validate_output",
    "kwargs",
}


class Pipeline:
    """Class to run a memory processing pipeline from a configuration file."""

    data: MemoryData
    steps: dict[str, Callable]

    def __init__(
        self,
        config_path: str | Path,
        steps: list[Callable] | None = None,
    ) -> None:
        """Initialize the Pipeline with configuration and steps.

        Args:
            config_path: Path to the YAML configuration.
            steps: Step functions available to the configuration.
        """
        self.config_path = config_path
        self.config = self._load_config()
        self.data = MemoryData()
        self.steps = {func.__name__: func for func in steps or []}

    def _load_config(self) -> dict[str, Any]:
        """Load the pipeline configuration from a YAML file.

        Replaces template variables in the format {{ variable_name }} with
        their corresponding values defined in the config. Top-level values
        may reference other top-level values.

        Returns:
            The configuration dictionary.

        Raises:
            ValueError: If the steps are missing or the variables reference
                each other in a cycle.
        """
        with Path(self.config_path).open() as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config.get("steps"), list):
            msg = f"Pipeline config {self.config_path} has no 'steps' list."
            raise ValueError(msg)

        # Extract top-level variables for substitution
        variables = {
            key: value
            for key, value in config.items()
            if isinstance(value, str)
        }

        def substitute(text: str) -> str:
            for var_name, var_value in variables.items():
                text = text.replace(f"{{{{ {var_name} }}}}", str(var_value))
            return text

        # Variables may reference each other; resolve until stable
        for _ in range(len(variables)):
            resolved = {
                key: substitute(value) for key, value in variables.items()
            }
            if resolved == variables:
                break
            variables = resolved

        unresolved = sorted(
            key
            for key, value in variables.items()
            if any(f"{{{{ {name} }}}}" in value for name in variables)
        )
        if unresolved:
            msg = (
                f"Pipeline config {self.config_path} has circular template "
                f"variables: {unresolved}."
            )
            raise ValueError(msg)

        def replace_templates(obj: Any) -> Any:  # noqa: ANN401
            if isinstance(obj, str):
                return substitute(obj)

            if isinstance(obj, dict):
                return {k: replace_templates(v) for k, v in obj.items()}

            if isinstance(obj, list):
                return [replace_templates(item) for item in obj]

            return obj

        return replace_templates(config)

    def parse_step_args(
        self, step_name: str, step_obj: Callable
    ) -> dict[str, Any]:
        """Separate the memory data and parameters.

        If an argument name matches a memory data container, it is passed
        from self.data. Else, it is taken from the step's "params".

        Args:
            step_name: Name of the step.
            step_obj: The step function.

        Raises:
            ValueError: If a required parameter is neither a container nor
                configured.
        """
        step_args = inspect.signature(step_obj).parameters
        containers = MemoryData.field_names()
        params = next(
            (
                s.get("params") or {}
                for s in self.config["steps"]
                if s["name"] == step_name
            ),
            {},
        )
        expected = [x for x in step_args if x not in RESERVED_ARGUMENTS]

        data_kwargs = {}
        config_kwargs = {}
        for arg_name, param in step_args.items():
            if arg_name in RESERVED_ARGUMENTS:
                continue
            if arg_name in containers:
                data_kwargs[arg_name] = getattr(self.data, arg_name)
            elif arg_name in params:
                config_kwargs[arg_name] = params[arg_name]
            elif param.default is inspect.Parameter.empty:
                msg = (
                    f"Missing required parameter '{arg_name}' "
                    f"for step '{step_name}'. Function expects "
                    f""""{'", "'.join(expected)}"."""
                )
                raise ValueError(msg)

        return {**data_kwargs, **config_kwargs}

    def run(self) -> MemoryData:
        """Run the configured steps in order."""
        n_steps = len(self.config["steps"])
        for i, step_cfg in enumerate(self.config["steps"], start=1):
            step_name = step_cfg["name"]

            if step_name not in self.steps:
                msg = f"Step '{step_name}' not found in pipeline steps."
                raise ValueError(msg)

            step_obj = self.steps[step_name]

            logger.info("")
            logger.info("=" * 70)
            logger.info("Step %d/%d: %s", i, n_steps, step_name)
            logger.info("=" * 70)

            kwargs = self.parse_step_args(step_name, step_obj)
            kwargs["validate_input"] = step_cfg.get("validate_input", True)
            kwargs["validate_output"] = step_cfg.get("validate_output", False)
            kwargs["memory_data"] = self.data

            step_obj(**kwargs)

        logger.info("Pipeline completed.")
        return self.data
