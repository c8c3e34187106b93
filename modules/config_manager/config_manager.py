import json
import os
import hashlib
import logging
import numbers
import jsonschema
from pathlib import Path
from typing import Dict, Any

from modules.model_factory import ModelFactory
from utils.exceptions import ConfigurationError
from utils import constants


class ConfigurationManager:
    """
    Manages system configuration loading, validation, and access.
    Acts as the single source of truth for the stepwise pipeline.
    """

    def __init__(self, config_path: str = "config/config.json",
                 schema_path: str = "config/schema.json"):
        """
        Initialize the ConfigurationManager.

        Args:
            config_path (str): Path to the user configuration JSON.
            schema_path (str): Path to the JSON schema definition.
        """
        self.config_path = config_path
        self.schema_path = schema_path
        self.config: Dict[str, Any] = {}
        self.schema: Dict[str, Any] = {}
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Main entry point. Loads config, validates schema and logic, applies defaults.

        Returns:
            Dict[str, Any]: The fully validated and hydrated configuration.

        Raises:
            ConfigurationError: If any validation step fails.
        """
        # 1. Load Files
        self.config = self._load_json(self.config_path)
        self.schema = self._load_json(self.schema_path)

        # 2. Structural Validation (Schema)
        self._validate_schema()

        # 3. Logical Validation (Business Rules & Bounds)
        self._validate_logic()

        # 4. Defaults
        self._apply_defaults()

        return self.config

    def save_artifacts(self, output_dir: str) -> None:
        """
        Save the configuration used and its SHA256 hash next to the model artifacts.
        """
        config_dir = Path(output_dir) / constants.CONFIG_DIR
        config_dir.mkdir(parents=True, exist_ok=True)

        with open(config_dir / constants.CONFIG_USED_FILE, 'w') as f:
            json.dump(self.config, f, indent=2)

        config_str = json.dumps(self.config, sort_keys=True)
        config_hash = hashlib.sha256(config_str.encode()).hexdigest()

        with open(config_dir / constants.CONFIG_HASH_FILE, 'w') as f:
            f.write(config_hash)

    def _load_json(self, path: str) -> Dict[str, Any]:
        """Safely load a JSON file."""
        if not os.path.exists(path):
            raise ConfigurationError(f"File not found: {path}")
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {str(e)}")

    def _validate_schema(self) -> None:
        """Validate config structure against JSON schema."""
        try:
            jsonschema.validate(instance=self.config, schema=self.schema)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Schema validation failed: {e.message}")

    def _validate_logic(self) -> None:
        """Comprehensive logical validation."""
        # --- Model Section ---
        name = self.config.get('model', {}).get('name')
        if not name:
            raise ConfigurationError("model.name must be specified and non-empty.")

        # --- Data Section ---
        data = self.config.get('data', {})
        if not data.get('target_column'):
            raise ConfigurationError("Data 'target_column' must be specified and non-empty.")
        features = data.get('feature_columns')
        if features is not None:
            if data['target_column'] in features:
                raise ConfigurationError("target_column cannot also be listed in feature_columns.")
            if constants.CONSTANT_COLUMN in features:
                raise ConfigurationError(
                    f"'{constants.CONSTANT_COLUMN}' is reserved for the intercept; use data.add_constant instead."
                )

        # --- Stepwise Section ---
        stepwise = self.config.get('stepwise', {})
        a_out = stepwise.get('a_out', constants.DEFAULT_A_OUT)
        if isinstance(a_out, bool) or not isinstance(a_out, numbers.Real) or not (0.0 < a_out <= 1.0):
            raise ConfigurationError(f"stepwise.a_out must be in (0, 1], got {a_out}")

        max_iterations = stepwise.get('max_iterations')
        if max_iterations is not None:
            if isinstance(max_iterations, bool) or not isinstance(max_iterations, int) or max_iterations < 0:
                raise ConfigurationError(f"stepwise.max_iterations must be null or an integer >= 0, got {max_iterations}")

        base_model = stepwise.get('base_model', constants.DEFAULT_BASE_MODEL)
        if not ModelFactory.is_registered(base_model):
            raise ConfigurationError(
                f"Unknown stepwise.base_model: {base_model}. Available: {ModelFactory.get_available_models()}"
            )
        if not ModelFactory.supports_significance(base_model):
            raise ConfigurationError(
                f"stepwise.base_model '{base_model}' does not report feature p-values. "
                f"Compatible: {ModelFactory.get_significance_models()}"
            )

        params = stepwise.get('base_model_params', {})
        if params is not None and not isinstance(params, dict):
            raise ConfigurationError("stepwise.base_model_params must be an object.")

    def _apply_defaults(self) -> None:
        stepwise = self.config.setdefault('stepwise', {})
        stepwise.setdefault('a_out', constants.DEFAULT_A_OUT)
        stepwise.setdefault('max_iterations', None)
        stepwise.setdefault('base_model', constants.DEFAULT_BASE_MODEL)
        stepwise.setdefault('base_model_params', {})

        self.config.setdefault('storage', {}).setdefault('base_dir', constants.DEFAULT_STORAGE_DIR)
        self.config.setdefault('outputs', {}).setdefault('save_history', True)
        self.config.setdefault('logging', {})
        self.logger.debug(f"Configuration validated: stepwise={stepwise}")
