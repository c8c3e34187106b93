#!/usr/bin/env python
"""
Stepwise Regression Pipeline - Main Entry Point
Loads a dataset, runs backward-elimination stepwise regression and persists the selected model.
"""
import sys
import logging
import argparse
import traceback
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

# Core Infrastructure
from modules.config_manager import ConfigurationManager
from modules.logging_config import LoggingConfigurator
from modules.dataset import Dataset
from modules.stepwise import StepwiseRegression, StepwiseTrainingParameters
from utils.file_io import read_dataframe
from utils.exceptions import StepwiseMLException, DataValidationError


def parse_arguments(argv=None):
    """
    Parse command-line arguments for configurable pipeline execution.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Stepwise Regression Pipeline - Backward Elimination",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config/config.json",
        help="Path to the configuration JSON file"
    )

    parser.add_argument(
        "--schema",
        type=str,
        default="config/schema.json",
        help="Path to the configuration JSON schema"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and data without training"
    )

    return parser.parse_args(argv)


def load_dataset(config: dict, logger: logging.Logger) -> Dataset:
    """
    Load the training file named in the config and wrap it as a Dataset.
    """
    data_cfg = config['data']
    file_path = Path(data_cfg['file_path'])
    if not file_path.exists():
        raise DataValidationError(f"Data file not found: {file_path}")

    logger.info(f"Loading data from {file_path}")
    try:
        df = read_dataframe(file_path)
    except ValueError as e:
        raise DataValidationError(str(e)) from e

    if df.empty:
        raise DataValidationError("Loaded dataframe is empty.")

    dataset = Dataset.from_dataframe(
        df,
        target_column=data_cfg['target_column'],
        feature_columns=data_cfg.get('feature_columns'),
        drop_columns=data_cfg.get('drop_columns', []),
        add_constant=data_cfg.get('add_constant', False),
    )
    logger.info(f"Data loaded: {len(dataset)} samples, {dataset.feature_column_count()} features")
    return dataset


def main(argv=None):
    """
    Main pipeline orchestration function.

    Returns:
        int: Exit code (0 for success, 1 for errors)
    """
    logger = None

    try:
        args = parse_arguments(argv)

        # ---------------------------------------------------------------
        # PHASE 0: INITIALIZATION & VALIDATION
        # ---------------------------------------------------------------
        config_manager = ConfigurationManager(config_path=args.config, schema_path=args.schema)
        config = config_manager.load_and_validate()

        if args.verbose:
            config['logging']['level'] = 'DEBUG'

        logging_configurator = LoggingConfigurator(config)
        logging_configurator.setup()
        logger = logging_configurator.get_logger('pipeline')

        logger.info(f"Configuration loaded from: {args.config}")

        parameters = StepwiseTrainingParameters.from_config(config)
        logger.info(f"Stepwise parameters: {parameters}")

        # ---------------------------------------------------------------
        # PHASE 1: DATA INGESTION
        # ---------------------------------------------------------------
        dataset = load_dataset(config, logger)
        model = None

        try:
            if args.dry_run:
                logger.info("Dry run mode: validation complete. Exiting without training.")
                return 0

            # -----------------------------------------------------------
            # PHASE 2: BACKWARD ELIMINATION
            # -----------------------------------------------------------
            model_name = config['model']['name']
            model = StepwiseRegression(model_name, config, parameters, logger)
            model.fit(dataset)

            metrics = model.validate(dataset)
            logger.info(f"Selected features: {model.selected_features_}")
            logger.info(
                f"In-sample fit: R2={metrics['r2']:.4f}, RMSE={metrics['rmse']:.4f}, MAE={metrics['mae']:.4f}"
            )

            # -----------------------------------------------------------
            # PHASE 3: FINALIZATION
            # -----------------------------------------------------------
            model_dir = model.storage.namespace_dir(model_name)
            config_manager.save_artifacts(str(model_dir))
            logger.info(f"Model persisted to {model_dir.absolute()}")
            return 0
        finally:
            if model is not None:
                model.close()
            dataset.dispose()

    except StepwiseMLException as e:
        if logger:
            logger.error(f"Pipeline failed: {e}")
        else:
            print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    except Exception as e:
        if logger:
            logger.critical(f"Unexpected error: {e}\n{traceback.format_exc()}")
        else:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
