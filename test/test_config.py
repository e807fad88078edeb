#!/usr/bin/env python3
"""
test/test_config.py
Configuration Management Tests for the Customer Comments Analysis job
"""

import pytest
import os
import sys
import tempfile
import shutil
import yaml
import time

# Add parent directory to path to import modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from config import ConfigManager, configure_argument_parser, ConfigurationError


class TestConfigManager:
    """Test suite for ConfigManager class."""

    def setup_method(self):
        """Setup test environment."""
        self.start_time = time.time()
        self.test_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Cleanup and timing."""
        shutil.rmtree(self.test_dir, ignore_errors=True)
        execution_time = time.time() - self.start_time
        print(f"\n⏱️  Test execution time: {execution_time:.3f}s")

    def write_config(self, content):
        path = os.path.join(self.test_dir, 'config.yaml')
        with open(path, 'w') as f:
            if isinstance(content, str):
                f.write(content)
            else:
                yaml.dump(content, f)
        return path

    def test_default_config_loading(self):
        """Test loading default configuration."""
        print("\n🧪 Testing default configuration loading...")

        config = ConfigManager()

        assert config.get_text_column() == 'comment_text'
        assert config.get_embedding_config()['vector_size'] == 100
        assert config.get_embedding_config()['min_count'] == 5
        assert config.get_clustering_config()['n_clusters'] == 5
        assert config.get_options()['seed'] == 123
        assert config.get_labeling_config()['good_cluster'] == 0
        assert config.get_labeling_config()['bad_cluster'] == 1
        assert config.get_preprocessing_options()['split_pattern'] == r'[\W_]+'

        print("✅ Default configuration loaded successfully")

    def test_yaml_config_loading(self):
        """Test loading configuration from YAML file."""
        print("\n🧪 Testing YAML configuration loading...")

        path = self.write_config({
            'input_file': 'data/comments.csv',
            'results_dir': 'results',
            'embedding': {'vector_size': 20},
            'clustering': {'n_clusters': 3}
        })

        config = ConfigManager(path)

        # Relative paths are resolved against the configuration file
        assert config.get_input_file_path() == os.path.join(self.test_dir, 'data', 'comments.csv')
        assert config.get_results_dir() == os.path.join(self.test_dir, 'results')
        # Output directories are only created when a run writes to them
        assert not os.path.exists(os.path.join(self.test_dir, 'results'))

        # Merged values keep the untouched defaults
        assert config.get_embedding_config()['vector_size'] == 20
        assert config.get_embedding_config()['min_count'] == 5
        assert config.get_clustering_config()['n_clusters'] == 3

        print("✅ YAML configuration loaded and merged successfully")

    def test_cli_overrides(self):
        """Test command line values override the file."""
        print("\n🧪 Testing CLI overrides...")

        path = self.write_config({'clustering': {'n_clusters': 3}})
        parser = configure_argument_parser()
        args = parser.parse_args([
            '--config', path,
            '--clusters', '7',
            '--min-count', '2',
            '--seed', '99',
            '--log-level', 'debug',
            '--text-column', 'feedback'
        ])

        config = ConfigManager(path, args)

        assert config.get_clustering_config()['n_clusters'] == 7
        assert config.get_embedding_config()['min_count'] == 2
        assert config.get_options()['seed'] == 99
        assert config.get_logging_config()['level'] == 'DEBUG'
        assert config.get_text_column() == 'feedback'

        print("✅ CLI overrides applied")

    def test_cli_overrides_without_file(self):
        """Test CLI values are used when no configuration file is given."""
        args = {'clustering.n_clusters': 4, 'input_file': 'other.csv', 'config_file': None}

        config = ConfigManager(None, args)

        assert config.get_clustering_config()['n_clusters'] == 4
        assert config.get_input_file_path() == 'other.csv'

    @pytest.mark.parametrize('content', [
        {'clustering': {'n_clusters': 0}},
        {'embedding': {'vector_size': -3}},
        {'preprocessing': {'min_token_length': 0}},
        {'embedding': {'min_count': 'five'}},
        {'labeling': {'good_cluster': 1, 'bad_cluster': 1}},
        {'labeling': {'policy': 'centroid'}},
        {'clustering': {'algorithm': 'dbscan'}},
        {'text_column': ''},
    ])
    def test_config_validation_failure(self, content):
        """Test configuration validation with invalid parameters."""
        print("\n🧪 Testing configuration validation (failure case)...")

        path = self.write_config(content)

        with pytest.raises(ConfigurationError):
            ConfigManager(path)

        print("✅ Configuration validation correctly failed for invalid config")

    def test_missing_and_malformed_files(self):
        """Test missing, empty and unparseable configuration files."""
        with pytest.raises(ConfigurationError):
            ConfigManager(os.path.join(self.test_dir, 'missing.yaml'))

        with pytest.raises(ConfigurationError):
            ConfigManager(self.write_config(''))

        with pytest.raises(ConfigurationError):
            ConfigManager(self.write_config('clustering: [unclosed'))

    def test_config_value_access(self):
        """Test accessing and updating configuration values with dotted paths."""
        print("\n🧪 Testing configuration value access...")

        config = ConfigManager()

        assert config.get_config_value('preprocessing.lowercase') is True
        assert config.get_config_value('non.existent.path', 'default') == 'default'

        config.update_config_value('embedding.min_count', 1)
        assert config.get_config_value('embedding.min_count') == 1

        config.update_config({'clustering': {'n_clusters': 2}})
        assert config.get_clustering_config()['n_clusters'] == 2
        assert config.get_clustering_config()['n_init'] == 10

        with pytest.raises(ConfigurationError):
            config.update_config({'clustering': {'n_clusters': 0}})

        print("✅ Configuration value access works")

    def test_as_dict_is_a_copy(self):
        config = ConfigManager()
        snapshot = config.as_dict()
        snapshot['clustering']['n_clusters'] = 42
        assert config.get_clustering_config()['n_clusters'] == 5


class TestArgumentParser:
    """Test suite for the command line parser."""

    def test_parser_destinations(self):
        parser = configure_argument_parser()
        args = parser.parse_args(['--input', 'in.csv', '--vector-size', '50', '--results-dir', 'out'])

        values = vars(args)
        assert values['input_file'] == 'in.csv'
        assert values['embedding.vector_size'] == 50
        assert values['results_dir'] == 'out'
        assert values['clustering.n_clusters'] is None

    def test_invalid_log_level_rejected(self):
        parser = configure_argument_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(['--log-level', 'verbose'])
