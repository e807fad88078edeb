import os
import textwrap
from collections import defaultdict
from types import MappingProxyType
from typing import Dict, List, Mapping, NamedTuple, Tuple

import pandas as pd
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt

from .classifier import GOOD, BAD

matplotlib.rcParams['figure.max_open_warning'] = 0
matplotlib.rcParams['axes.unicode_minus'] = False

TABLE_COLUMNS = ['Prediction', 'Comments']


class Report(NamedTuple):
    """Comments grouped per cluster plus the Good/Bad counts of one run."""
    per_cluster_comments: Mapping[int, Tuple[str, ...]]
    good_count: int
    bad_count: int

    @property
    def total_comments(self):
        return sum(len(texts) for texts in self.per_cluster_comments.values())

    def chart_counts(self) -> Dict[str, int]:
        """Two-series dataset for the good-vs-bad bar chart."""
        return {GOOD: self.good_count, BAD: self.bad_count}

    def to_dataframe(self, separator=', '):
        """
        Builds the per-cluster table.

        Args:
            separator: String placed between the comments of a cluster

        Returns:
            pandas.DataFrame with columns ``Prediction`` and ``Comments``
        """
        rows = [
            {'Prediction': cluster_id, 'Comments': separator.join(texts)}
            for cluster_id, texts in self.per_cluster_comments.items()
        ]
        return pd.DataFrame(rows, columns=TABLE_COLUMNS)


class ReportBuilder:
    """Aggregates cluster assignments into a Report."""

    def __init__(self, logger=None):
        self.logger = logger

    @staticmethod
    def _centroid(centroids, cluster_id):
        if centroids is None or cluster_id >= len(centroids):
            return None
        return centroids[cluster_id]

    def label_assignments(self, assignments, label_policy, centroids=None) -> List[str]:
        """Returns the bucket of every assignment, in assignment order."""
        cache = {}
        buckets = []
        for assignment in assignments:
            cluster_id = assignment.cluster_id
            if cluster_id not in cache:
                cache[cluster_id] = label_policy.label(cluster_id, self._centroid(centroids, cluster_id))
            buckets.append(cache[cluster_id])
        return buckets

    def build(self, comments, assignments, label_policy, centroids=None) -> Report:
        """
        Groups comment texts by cluster and counts the Good and Bad buckets.

        Clusters are keyed in ascending id order and only appear when they
        hold at least one comment; texts keep their input order.

        Args:
            comments: list of Comment
            assignments: list of ClusterAssignment, exactly one per comment
            label_policy: BaseLabelPolicy deciding each cluster's bucket
            centroids: Optional cluster centers indexed by cluster id

        Returns:
            Report

        Raises:
            ValueError: If a comment has no assignment or more than one
        """
        cluster_by_comment = {}
        for assignment in assignments:
            if assignment.comment_id in cluster_by_comment:
                raise ValueError(f"Comment {assignment.comment_id} has more than one cluster assignment")
            cluster_by_comment[assignment.comment_id] = assignment.cluster_id

        comment_ids = {comment.id for comment in comments}
        unassigned = comment_ids.difference(cluster_by_comment)
        if unassigned:
            raise ValueError(f"{len(unassigned)} comments have no cluster assignment")
        unknown = set(cluster_by_comment).difference(comment_ids)
        if unknown:
            raise ValueError(f"{len(unknown)} cluster assignments refer to unknown comments")

        grouped = defaultdict(list)
        for comment in comments:
            grouped[cluster_by_comment[comment.id]].append(comment.text)

        good_count = 0
        bad_count = 0
        per_cluster_comments = {}
        for cluster_id in sorted(grouped):
            texts = tuple(grouped[cluster_id])
            per_cluster_comments[cluster_id] = texts
            bucket = label_policy.label(cluster_id, self._centroid(centroids, cluster_id))
            if bucket == GOOD:
                good_count += len(texts)
            elif bucket == BAD:
                bad_count += len(texts)

        report = Report(MappingProxyType(per_cluster_comments), good_count, bad_count)

        if self.logger is not None:
            self.logger.info(
                f"Report built: {report.total_comments} comments in {len(per_cluster_comments)} clusters "
                f"({good_count} good, {bad_count} bad)"
            )
        return report


class CommentsVisualizer:
    """Renders a Report as a good-vs-bad bar chart and a per-cluster comments table."""

    def __init__(self, config, logger, results_dir):
        self.config = config
        self.logger = logger
        self.results_dir = results_dir
        self.presentation_config = config.get_presentation_config()
        self.dpi = self.presentation_config.get('dpi', 150)
        # None until the first write checks the results directory
        self.can_write = None

        plt.ioff()

    def _prepare_results_dir(self):
        """Creates the results directory and checks that it is writable."""
        try:
            os.makedirs(self.results_dir, exist_ok=True)
        except OSError as e:
            self.logger.warning(f"Could not create results directory {self.results_dir}: {e}")
            self.results_dir = "."

        try:
            test_file = os.path.join(self.results_dir, "test_write.tmp")
            with open(test_file, 'w') as f:
                f.write("test")
            os.remove(test_file)
            self.can_write = True
        except OSError as e:
            self.can_write = False
            self.logger.warning(f"Cannot write to {self.results_dir}: {e}")

    def _writable(self):
        if self.can_write is None:
            self._prepare_results_dir()
        return self.can_write

    def _safe_save_plot(self, fig, file_path):
        """Save and close a figure, returning its path or None on failure."""
        if not self._writable():
            self.logger.warning("Cannot save plot - no write permissions")
            plt.close(fig)
            return None

        try:
            fig.savefig(file_path, dpi=self.dpi, bbox_inches='tight',
                        facecolor='white', edgecolor='none', format='png')
        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to save plot {file_path}: {e}")
            return None
        finally:
            plt.close(fig)

        if os.path.exists(file_path) and os.path.getsize(file_path) > 0:
            self.logger.info(f"Successfully saved plot: {file_path}")
            return file_path

        self.logger.warning(f"Plot file is empty or missing: {file_path}")
        return None

    def create_good_bad_chart(self, report):
        """Bar chart of the Good and Bad counts (Good in green, Bad in red)."""
        counts = report.chart_counts()
        categories = list(counts.keys())
        values = list(counts.values())

        fig, ax = plt.subplots(figsize=(6, 4))
        bars = ax.bar(categories, values, color=['green', 'red'])
        ax.set_title('Good vs Bad Comments')
        ax.set_xlabel('Category')
        ax.set_ylabel('Count')
        ax.yaxis.get_major_locator().set_params(integer=True)

        for bar, value in zip(bars, values):
            ax.annotate(str(value), (bar.get_x() + bar.get_width() / 2, bar.get_height()),
                        ha='center', va='bottom', fontsize=9)

        file_path = os.path.join(self.results_dir, self.presentation_config.get('chart_file', 'good_vs_bad_comments.png'))
        return self._safe_save_plot(fig, file_path)

    def create_comments_table(self, report):
        """Rendered table of the comments grouped per cluster."""
        separator = self.presentation_config.get('separator', ', ')
        max_chars = self.presentation_config.get('max_comment_chars', 120)
        table = report.to_dataframe(separator)

        fig, ax = plt.subplots(figsize=(10, 1 + 0.4 * max(len(table), 1)))
        ax.axis('off')
        ax.set_title('Comments Table')

        if table.empty:
            ax.text(0.5, 0.5, 'No comments', ha='center', va='center')
        else:
            cell_text = [
                [str(row.Prediction), textwrap.shorten(row.Comments, width=max_chars, placeholder='...') or '']
                for row in table.itertuples(index=False)
            ]
            rendered = ax.table(cellText=cell_text, colLabels=TABLE_COLUMNS, loc='center', cellLoc='left')
            rendered.auto_set_font_size(False)
            rendered.set_fontsize(8)
            rendered.auto_set_column_width([0, 1])

        file_path = os.path.join(self.results_dir, self.presentation_config.get('table_file', 'comments_table.png'))
        return self._safe_save_plot(fig, file_path)

    def save_comments_table_csv(self, report):
        """Writes the full per-cluster table as CSV."""
        if not self._writable():
            self.logger.warning("Cannot save table - no write permissions")
            return None

        file_path = os.path.join(self.results_dir, self.presentation_config.get('table_csv', 'comments_table.csv'))
        try:
            report.to_dataframe(self.presentation_config.get('separator', ', ')).to_csv(file_path, index=False)
        except OSError as e:
            self.logger.error(f"Failed to save table {file_path}: {e}")
            return None

        self.logger.info(f"Successfully saved table: {file_path}")
        return file_path

    def render(self, report):
        """
        Renders every output for a report.

        Returns:
            dict: Output name to file path (None for outputs that failed)
        """
        return {
            'chart': self.create_good_bad_chart(report),
            'table': self.create_comments_table(report),
            'table_csv': self.save_comments_table_csv(report)
        }
