import os
import yaml
import argparse
import copy
import logging
from typing import List


class ConfigurationError(Exception):
    """Exception raised for errors in the configuration."""
    pass


class ConfigManager:
    """
    Configuration manager for the comments analysis job.

    This class is responsible for loading, validating, and providing access to
    the application configuration. It supports loading from YAML files,
    overriding with command line arguments, and provides convenient access
    methods for each stage of the pipeline.

    Attributes:
        config_file (str): Path to the configuration file
        config (dict): The loaded configuration
    """

    # Default configuration values (the reference run)
    DEFAULT_CONFIG = {
        'input_file': 'comments.csv',
        'output_file': 'output/clustered_comments.csv',
        'results_dir': 'output',
        'text_column': 'comment_text',
        'input': {
            'delimiter': ',',
            'encoding': 'utf-8'
        },
        'preprocessing': {
            'lowercase': True,
            'split_pattern': r'[\W_]+',
            'min_token_length': 1,
            'remove_stopwords': True,
            'stopwords_language': 'english',
            'stopwords': None,
            'custom_stopwords': [],
            'case_sensitive': False
        },
        'embedding': {
            'vector_size': 100,
            'min_count': 5,
            'window': 5,
            'sg': 1,
            'epochs': 5,
            'workers': 1
        },
        'clustering': {
            'algorithm': 'kmeans',
            'n_clusters': 5,
            'n_init': 10,
            'max_iter': 300,
            'tol': 1e-4
        },
        'labeling': {
            'policy': 'fixed',
            'good_cluster': 0,
            'bad_cluster': 1
        },
        'presentation': {
            'chart_file': 'good_vs_bad_comments.png',
            'table_file': 'comments_table.png',
            'table_csv': 'comments_table.csv',
            'separator': ', ',
            'max_comment_chars': 120,
            'dpi': 150
        },
        'logging': {
            'level': 'INFO',
            'console_output': True,
            'log_file': None
        },
        'options': {
            'seed': 123
        }
    }

    # Required parameters that must be present in the configuration
    REQUIRED_PARAMS = [
        'input_file',
        'text_column'
    ]

    # Parameters that must be positive integers
    POSITIVE_INT_PARAMS = [
        'preprocessing.min_token_length',
        'embedding.vector_size',
        'embedding.min_count',
        'embedding.window',
        'embedding.epochs',
        'embedding.workers',
        'clustering.n_clusters',
        'clustering.n_init',
        'clustering.max_iter'
    ]

    def __init__(self, config_file=None, cli_args=None):
        """
        Initializes the configuration manager.

        Args:
            config_file (str, optional): Path to the YAML configuration file.
            cli_args (argparse.Namespace or dict, optional): Command line arguments.
        """
        self.config_file = config_file
        self.cli_args = cli_args
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.logger = logging.getLogger(__name__)

        try:
            if config_file:
                self.load_config()
            elif cli_args:
                self._merge_cli_args()
            self.validate_config()
        except Exception as e:
            # Re-raise as ConfigurationError with clear message
            if not isinstance(e, ConfigurationError):
                raise ConfigurationError(f"Configuration error: {str(e)}")
            raise

    def load_config(self):
        """
        Loads the configuration from the file and merges it with CLI arguments.

        The loading process follows these steps:
        1. Load configuration from the YAML file
        2. Merge with default configuration
        3. Override with command line arguments
        4. Resolve relative paths against the configuration file directory

        Returns:
            dict: The loaded and merged configuration

        Raises:
            FileNotFoundError: If the configuration file is not found
            ConfigurationError: If the configuration file cannot be loaded or parsed
        """
        try:
            if not self.config_file:
                self.logger.warning("No configuration file provided, using default configuration")
                return self.config

            if not os.path.exists(self.config_file):
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

            with open(self.config_file, 'r', encoding='utf-8') as file:
                file_config = yaml.safe_load(file)

            if not file_config:
                raise ConfigurationError("Configuration file is empty")
            if not isinstance(file_config, dict):
                raise ConfigurationError("Configuration file must contain a mapping")

            # Deep merge file configuration with default configuration
            self._deep_merge(self.config, file_config)

            # Merge with CLI arguments if provided
            if self.cli_args:
                self._merge_cli_args()

            self._resolve_paths()

            self.logger.debug(f"Configuration loaded from {self.config_file}")
            return self.config

        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML configuration: {str(e)}")
        except Exception as e:
            if isinstance(e, FileNotFoundError) or isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Failed to load configuration: {str(e)}")

    def _deep_merge(self, base_dict, override_dict):
        """
        Deep merges override_dict into base_dict recursively.

        Args:
            base_dict (dict): Base dictionary to merge into
            override_dict (dict): Dictionary with values to override
        """
        if not isinstance(override_dict, dict):
            return

        for key, value in override_dict.items():
            if key in base_dict and isinstance(base_dict[key], dict) and isinstance(value, dict):
                self._deep_merge(base_dict[key], value)
            else:
                base_dict[key] = copy.deepcopy(value)

    def _merge_cli_args(self):
        """
        Merges command line arguments into the configuration.

        Supports both flat arguments and nested arguments using dot notation
        (e.g. an argparse dest of 'clustering.n_clusters').
        """
        if not self.cli_args:
            return

        cli_dict = vars(self.cli_args) if hasattr(self.cli_args, '__dict__') else self.cli_args

        for key, value in cli_dict.items():
            if value is None:
                continue

            if key == 'log_level':
                self._set_nested_config(['logging', 'level'], value.upper())
            elif key == 'seed':
                self._set_nested_config(['options', 'seed'], value)
            elif key in ('config_file', 'export_config'):
                continue
            elif '.' in key:
                self._set_nested_config(key.split('.'), value)
            else:
                self.config[key] = value

    def _set_nested_config(self, key_parts, value):
        """
        Sets a value in the nested configuration structure.

        Args:
            key_parts (list): List of keys representing the path in the configuration
            value: Value to set
        """
        current = self.config
        for i, part in enumerate(key_parts):
            if i == len(key_parts) - 1:
                current[part] = value
            else:
                if part not in current or not isinstance(current[part], dict):
                    current[part] = {}
                current = current[part]

    def _resolve_paths(self):
        """Resolves relative paths in the configuration to absolute paths."""
        base_dir = os.path.dirname(os.path.abspath(self.config_file)) if self.config_file else os.getcwd()

        for path_key in ['input_file', 'output_file', 'results_dir']:
            if path_key in self.config and self.config[path_key]:
                path = self.config[path_key]
                if not os.path.isabs(path):
                    self.config[path_key] = os.path.normpath(os.path.join(base_dir, path))

        log_file = self.config.get('logging', {}).get('log_file')
        if log_file and not os.path.isabs(log_file):
            self.config['logging']['log_file'] = os.path.normpath(os.path.join(base_dir, log_file))

    def get_input_file_path(self):
        """
        Gets the path of the input file.

        Returns:
            str: Path to the input CSV file
        """
        return self.config.get('input_file')

    def get_output_file_path(self):
        """
        Gets the path of the clustered output file.

        Returns:
            str: Path to the output file
        """
        return self.config.get('output_file')

    def get_results_dir(self):
        """
        Gets the path of the results directory.

        Returns:
            str: Path to the results directory
        """
        return self.config.get('results_dir')

    def get_text_column(self):
        """Gets the name of the comment text column."""
        return self.config.get('text_column')

    def get_input_options(self):
        """Gets CSV reading options."""
        return self.config.get('input', {})

    def get_preprocessing_options(self):
        """
        Gets text preprocessing options.

        Returns:
            dict: Preprocessing configuration
        """
        return self.config.get('preprocessing', {})

    def get_embedding_config(self):
        """
        Gets the word embedding configuration.

        Returns:
            dict: Embedding configuration
        """
        return self.config.get('embedding', {})

    def get_clustering_config(self):
        """
        Gets the clustering configuration.

        Returns:
            dict: Clustering configuration
        """
        return self.config.get('clustering', {})

    def get_labeling_config(self):
        """Gets the cluster labeling configuration."""
        return self.config.get('labeling', {})

    def get_presentation_config(self):
        """Gets chart and table rendering options."""
        return self.config.get('presentation', {})

    def get_logging_config(self):
        """
        Gets logging configuration.

        Returns:
            dict: Logging configuration
        """
        return self.config.get('logging', {})

    def get_options(self):
        """
        Gets miscellaneous options.

        Returns:
            dict: Miscellaneous options
        """
        return self.config.get('options', {})

    def get_config_value(self, key_path, default=None):
        """
        Gets a configuration value using a dotted key path.

        Args:
            key_path (str): Dotted path to the configuration value (e.g., 'embedding.min_count')
            default: Default value to return if the key is not found

        Returns:
            The configuration value or the default if not found
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def update_config(self, updates):
        """
        Updates the configuration with new values.

        The updates are deep merged into the current configuration and the
        result is validated again.

        Args:
            updates (dict): Dictionary with updates to apply

        Returns:
            ConfigManager: Self for method chaining
        """
        self._deep_merge(self.config, updates)
        self.validate_config()
        return self

    def update_config_value(self, key_path, value):
        """
        Updates a specific configuration value using a dotted key path.

        Args:
            key_path (str): Dotted path to the configuration value (e.g., 'clustering.n_clusters')
            value: New value to set

        Returns:
            ConfigManager: Self for method chaining
        """
        keys = key_path.split('.')
        self._set_nested_config(keys, value)
        return self

    def as_dict(self):
        """
        Gets the complete configuration as a dictionary.

        Returns:
            dict: The complete configuration
        """
        return copy.deepcopy(self.config)

    def validate_config(self):
        """
        Validates the configuration for required parameters and consistency.

        Raises:
            ConfigurationError: If any parameter is missing or invalid
        """
        if not self.config:
            raise ConfigurationError("Configuration is empty or not loaded")

        missing_params = [
            param for param in self.REQUIRED_PARAMS
            if param not in self.config or not self.config[param]
        ]
        if missing_params:
            raise ConfigurationError(f"Required parameters missing in configuration: {', '.join(missing_params)}")

        errors = []
        for key_path in self.POSITIVE_INT_PARAMS:
            value = self.get_config_value(key_path)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                errors.append(f"{key_path} must be a positive integer (got {value!r})")

        seed = self.get_config_value('options.seed')
        if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
            errors.append(f"options.seed must be an integer (got {seed!r})")

        algorithm = str(self.get_config_value('clustering.algorithm', 'kmeans')).lower()
        if algorithm != 'kmeans':
            errors.append(f"clustering.algorithm '{algorithm}' is not supported. Currently only 'kmeans' is supported.")

        self._validate_labeling(errors)

        if errors:
            raise ConfigurationError("Configuration validation failed:\n" + "\n".join(errors))

        return True

    def _validate_labeling(self, errors: List[str]):
        """Validate the good/bad cluster convention."""
        labeling = self.get_labeling_config()
        policy = labeling.get('policy', 'fixed')
        if policy != 'fixed':
            errors.append(f"labeling.policy '{policy}' is not supported. Currently only 'fixed' is supported.")
            return

        good = labeling.get('good_cluster')
        bad = labeling.get('bad_cluster')
        for name, value in (('good_cluster', good), ('bad_cluster', bad)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                errors.append(f"labeling.{name} must be a non-negative integer (got {value!r})")
        if good is not None and good == bad:
            errors.append("labeling.good_cluster and labeling.bad_cluster must differ")


def configure_argument_parser():
    """
    Configures an argument parser for the application.

    Option destinations use the dotted configuration paths so that they can be
    merged directly into the loaded configuration.

    Returns:
        argparse.ArgumentParser: Configured argument parser
    """
    parser = argparse.ArgumentParser(description='Customer Comments Analysis')

    parser.add_argument('--config', dest='config_file',
                        help='Path to the configuration file')

    parser.add_argument('--input', dest='input_file',
                        help='Path to the input CSV file')

    parser.add_argument('--output', dest='output_file',
                        help='Path to the clustered comments CSV file')

    parser.add_argument('--results-dir', dest='results_dir',
                        help='Directory for the chart and table outputs')

    parser.add_argument('--text-column', dest='text_column',
                        help='Name of the column holding the comment text')

    parser.add_argument('--clusters', dest='clustering.n_clusters', type=int,
                        help='Number of clusters to identify')

    parser.add_argument('--vector-size', dest='embedding.vector_size', type=int,
                        help='Dimension of the word vectors')

    parser.add_argument('--min-count', dest='embedding.min_count', type=int,
                        help='Minimum number of occurrences for a word to get a vector')

    parser.add_argument('--log-level', dest='log_level',
                        choices=['debug', 'info', 'warning', 'error'],
                        help='Logging level')

    parser.add_argument('--seed', dest='seed', type=int,
                        help='Random seed for reproducibility')

    return parser
