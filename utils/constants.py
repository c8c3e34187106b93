# utils/constants.py

# --- Reserved Column Names ---
# Intercept column; never a candidate for elimination
CONSTANT_COLUMN = "const"

# --- Stepwise Defaults ---
DEFAULT_A_OUT = 0.05
DEFAULT_BASE_MODEL = "OLSRegressor"

# --- Storage Layout ---
# Each model owns a namespace directory under storage.base_dir
DEFAULT_STORAGE_DIR = "models"
DELEGATE_NAMESPACE = "delegate"   # Sub-namespace holding the active delegate

# --- File Names ---
MODEL_STATE_FILE = "model.pkl"
MODEL_METADATA_FILE = "metadata.json"
STEPWISE_PARAMETERS_FILE = "stepwise_parameters.json"
ELIMINATION_HISTORY_FILE = "elimination_history.parquet"
CONFIG_DIR = "config_snapshot"
CONFIG_USED_FILE = "config_used.json"
CONFIG_HASH_FILE = "config_hash.txt"

# --- Elimination Decisions ---
DECISION_REMOVE = "REMOVE"
DECISION_STOP = "STOP"
