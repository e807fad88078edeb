#!/usr/bin/env python3
"""
test/test_reporting.py
Report Building and Rendering Tests for the Customer Comments Analysis job
"""

import pytest
import os
import sys
import time
import numpy as np
import pandas as pd
from unittest.mock import Mock

# Add parent directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from comments_analysis.data_processor import Comment
from comments_analysis.classifier import ClusterAssignment, FixedLabelPolicy, BaseLabelPolicy, GOOD, BAD, OTHER
from comments_analysis.reporting import Report, ReportBuilder, CommentsVisualizer, TABLE_COLUMNS


def make_comments(texts):
    return [Comment(index, text) for index, text in enumerate(texts)]


class TestReportBuilder:
    """Test suite for ReportBuilder class."""

    def setup_method(self):
        """Setup test environment."""
        self.start_time = time.time()
        self.builder = ReportBuilder(Mock())
        self.policy = FixedLabelPolicy()

    def teardown_method(self):
        """Cleanup and timing."""
        execution_time = time.time() - self.start_time
        print(f"\n⏱️  Test execution time: {execution_time:.3f}s")

    def test_grouping_and_counts(self):
        """Test comments are grouped by cluster and counted per bucket."""
        print("\n🧪 Testing report building...")

        comments = make_comments(["a", "b", "c", "d", "e"])
        assignments = [
            ClusterAssignment(0, 1),
            ClusterAssignment(1, 0),
            ClusterAssignment(2, 2),
            ClusterAssignment(3, 1),
            ClusterAssignment(4, 0),
        ]

        report = self.builder.build(comments, assignments, self.policy)

        assert list(report.per_cluster_comments.keys()) == [0, 1, 2]
        assert report.per_cluster_comments[0] == ("b", "e")
        assert report.per_cluster_comments[1] == ("a", "d")
        assert report.per_cluster_comments[2] == ("c",)
        assert report.good_count == 2
        assert report.bad_count == 2
        assert report.total_comments == 5
        assert report.good_count + report.bad_count <= report.total_comments

        print("✅ Report built correctly")

    def test_duplicate_texts_are_kept(self):
        comments = make_comments(["same", "same"])
        report = self.builder.build(comments, [ClusterAssignment(0, 0), ClusterAssignment(1, 0)], self.policy)

        assert report.per_cluster_comments[0] == ("same", "same")
        assert report.good_count == 2

    def test_empty_clusters_are_omitted(self):
        comments = make_comments(["x", "y"])
        report = self.builder.build(comments, [ClusterAssignment(0, 2), ClusterAssignment(1, 2)], self.policy)

        assert list(report.per_cluster_comments.keys()) == [2]
        assert report.good_count == 0
        assert report.bad_count == 0

    def test_empty_input(self):
        report = self.builder.build([], [], self.policy)

        assert dict(report.per_cluster_comments) == {}
        assert report.good_count == 0
        assert report.bad_count == 0
        assert report.total_comments == 0

    def test_report_is_read_only(self):
        report = self.builder.build(make_comments(["x"]), [ClusterAssignment(0, 0)], self.policy)

        with pytest.raises(TypeError):
            report.per_cluster_comments[5] = ("y",)
        with pytest.raises(AttributeError):
            report.good_count = 10

    def test_missing_assignment(self):
        with pytest.raises(ValueError):
            self.builder.build(make_comments(["x", "y"]), [ClusterAssignment(0, 0)], self.policy)

    def test_duplicate_assignment(self):
        with pytest.raises(ValueError):
            self.builder.build(
                make_comments(["x"]), [ClusterAssignment(0, 0), ClusterAssignment(0, 1)], self.policy
            )

    def test_unknown_comment_assignment(self):
        with pytest.raises(ValueError):
            self.builder.build(
                make_comments(["x"]), [ClusterAssignment(0, 0), ClusterAssignment(9, 1)], self.policy
            )

    def test_custom_policy_receives_centroids(self):
        """Test a policy that inspects cluster centroids."""

        class PositiveFirstCoordinate(BaseLabelPolicy):
            def label(self, cluster_id, centroid=None):
                return GOOD if centroid[0] > 0 else BAD

        centroids = np.array([[-1.0, 0.0], [1.0, 0.0]])
        comments = make_comments(["x", "y", "z"])
        assignments = [ClusterAssignment(0, 0), ClusterAssignment(1, 1), ClusterAssignment(2, 1)]

        report = self.builder.build(comments, assignments, PositiveFirstCoordinate(), centroids)

        assert report.good_count == 2
        assert report.bad_count == 1

    def test_label_assignments(self):
        assignments = [ClusterAssignment(0, 2), ClusterAssignment(1, 0), ClusterAssignment(2, 1)]
        assert self.builder.label_assignments(assignments, self.policy) == [OTHER, GOOD, BAD]


class TestReport:
    """Test suite for the Report tabular views."""

    def setup_method(self):
        self.report = Report({0: ("great", "thanks"), 3: ("late",)}, 2, 0)

    def test_chart_counts(self):
        assert self.report.chart_counts() == {GOOD: 2, BAD: 0}

    def test_to_dataframe(self):
        table = self.report.to_dataframe()

        assert list(table.columns) == TABLE_COLUMNS
        assert table['Prediction'].tolist() == [0, 3]
        assert table['Comments'].tolist() == ["great, thanks", "late"]

    def test_to_dataframe_custom_separator(self):
        assert self.report.to_dataframe(" | ")['Comments'].iloc[0] == "great | thanks"

    def test_empty_dataframe_keeps_columns(self):
        table = Report({}, 0, 0).to_dataframe()
        assert table.empty
        assert list(table.columns) == TABLE_COLUMNS


class TestCommentsVisualizer:
    """Test suite for CommentsVisualizer class."""

    def setup_method(self):
        """Setup test environment."""
        self.start_time = time.time()
        self.mock_logger = Mock()

    def teardown_method(self):
        """Cleanup and timing."""
        execution_time = time.time() - self.start_time
        print(f"\n⏱️  Test execution time: {execution_time:.3f}s")

    def test_render_outputs(self, mock_config, test_data_dir):
        """Test the chart, the table image and the table CSV are written."""
        print("\n🧪 Testing report rendering...")

        visualizer = CommentsVisualizer(mock_config, self.mock_logger, test_data_dir)
        report = Report({0: ("great service",) * 3, 1: ("late delivery " * 20,)}, 3, 1)

        outputs = visualizer.render(report)

        assert set(outputs) == {'chart', 'table', 'table_csv'}
        for path in outputs.values():
            assert path is not None
            assert os.path.getsize(path) > 0

        table = pd.read_csv(outputs['table_csv'])
        assert table['Prediction'].tolist() == [0, 1]
        assert table['Comments'].iloc[0] == "great service, great service, great service"

        print(f"✅ Rendered {len(outputs)} outputs")

    def test_render_empty_report(self, mock_config, test_data_dir):
        visualizer = CommentsVisualizer(mock_config, self.mock_logger, test_data_dir)
        outputs = visualizer.render(Report({}, 0, 0))

        assert outputs['chart'] is not None
        assert outputs['table'] is not None
        assert os.path.exists(outputs['table_csv'])

    def test_results_dir_created_on_first_render(self, mock_config, test_data_dir):
        results_dir = os.path.join(test_data_dir, 'nested', 'results')
        visualizer = CommentsVisualizer(mock_config, self.mock_logger, results_dir)

        assert not os.path.exists(results_dir)
        assert visualizer.can_write is None

        visualizer.render(Report({0: ("x",)}, 1, 0))

        assert os.path.isdir(results_dir)
        assert visualizer.can_write is True
        assert not os.path.exists(os.path.join(results_dir, 'test_write.tmp'))

    def test_no_write_permission(self, mock_config, test_data_dir):
        visualizer = CommentsVisualizer(mock_config, self.mock_logger, test_data_dir)
        visualizer.can_write = False

        outputs = visualizer.render(Report({0: ("x",)}, 1, 0))

        assert outputs == {'chart': None, 'table': None, 'table_csv': None}
        assert self.mock_logger.warning.called
