# test/conftest.py
# Pytest configuration and fixtures

import pytest
import os
import sys
import tempfile
import shutil
from unittest.mock import Mock

# Add parent directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

TEST_STOPWORDS = ['the', 'a', 'an', 'and', 'is', 'was', 'it', 'i', 'to', 'of', 'very', 'my']


@pytest.fixture
def test_data_dir():
    """Create a temporary directory for test data."""
    temp_dir = tempfile.mkdtemp(prefix="comments_analysis_test_")
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def mock_config():
    """Create a mock configuration object."""
    config = Mock()
    config.get_preprocessing_options.return_value = {
        'lowercase': True,
        'split_pattern': r'[\W_]+',
        'remove_stopwords': True,
        'stopwords': TEST_STOPWORDS,
        'custom_stopwords': [],
        'case_sensitive': False
    }
    config.get_embedding_config.return_value = {
        'vector_size': 10,
        'min_count': 1,
        'window': 5,
        'sg': 1,
        'epochs': 5,
        'workers': 1
    }
    config.get_clustering_config.return_value = {
        'algorithm': 'kmeans',
        'n_clusters': 3,
        'n_init': 10,
        'max_iter': 300
    }
    config.get_labeling_config.return_value = {
        'policy': 'fixed',
        'good_cluster': 0,
        'bad_cluster': 1
    }
    config.get_presentation_config.return_value = {
        'chart_file': 'good_vs_bad_comments.png',
        'table_file': 'comments_table.png',
        'table_csv': 'comments_table.csv',
        'separator': ', ',
        'max_comment_chars': 80,
        'dpi': 50
    }
    config.get_logging_config.return_value = {
        'level': 'INFO',
        'console_output': True
    }
    config.get_input_options.return_value = {'delimiter': ',', 'encoding': 'utf-8'}
    config.get_text_column.return_value = 'comment_text'
    config.get_options.return_value = {'seed': 42}
    return config


@pytest.fixture
def mock_logger():
    """Create a mock logger object."""
    return Mock()


@pytest.fixture
def sample_comments():
    """Short customer comments with two obvious themes."""
    return [
        "Great service, thanks a lot!",
        "The delivery was late and the box was damaged.",
        "great service and friendly staff",
        "Damaged box, late delivery again...",
        "Thanks for the great service",
        "late delivery, damaged product",
    ]


@pytest.fixture
def comments_csv(test_data_dir, sample_comments):
    """Write the sample comments to a CSV file with a comment_text column."""
    import pandas as pd
    path = os.path.join(test_data_dir, 'comments.csv')
    pd.DataFrame({
        'customer_id': list(range(1, len(sample_comments) + 1)),
        'comment_text': sample_comments
    }).to_csv(path, index=False)
    return path
