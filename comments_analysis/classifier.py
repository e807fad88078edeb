import time
import warnings
from typing import List, NamedTuple

import numpy as np
from sklearn.cluster import KMeans
from sklearn.exceptions import ConvergenceWarning


GOOD = 'Good'
BAD = 'Bad'
OTHER = 'Other'


class ClusterAssignment(NamedTuple):
    comment_id: int
    cluster_id: int


class BaseClusterer:
    """Base class for clustering algorithms."""

    def __init__(self, config, logger):
        """
        Initializes the base clusterer.

        Args:
            config: Configuration manager
            logger: Logger instance
        """
        self.config = config
        self.logger = logger
        self.model = None
        self.cluster_centers_ = None
        self.labels_ = None
        self.degenerate = False
        self.options = config.get_options()
        self.seed = self.options.get('seed', 123)

    def fit(self, features):
        """
        Fits the clustering algorithm to the features.

        Args:
            features: Feature matrix

        Returns:
            Fitted clusterer
        """
        raise NotImplementedError("fit() must be implemented by subclasses")

    def predict(self, features):
        """
        Predicts cluster assignments for features.

        Args:
            features: Feature matrix

        Returns:
            Cluster assignments
        """
        raise NotImplementedError("predict() must be implemented by subclasses")

    def get_labels(self):
        """
        Gets the cluster labels from the fitted model.

        Returns:
            Cluster assignments
        """
        if self.labels_ is None:
            raise RuntimeError("Clusterer must be fitted before getting labels")
        return self.labels_

    def get_cluster_centers(self):
        """
        Gets the cluster centers from the fitted model.

        Returns:
            Cluster centers or None if not available
        """
        return self.cluster_centers_

    def get_assignments(self, comment_ids=None) -> List[ClusterAssignment]:
        """
        Pairs every comment with its cluster id.

        Args:
            comment_ids: Optional ids in feature row order (defaults to row indices)

        Returns:
            list of ClusterAssignment
        """
        labels = self.get_labels()
        if comment_ids is None:
            comment_ids = range(len(labels))
        comment_ids = list(comment_ids)
        if len(comment_ids) != len(labels):
            raise ValueError(f"Got {len(comment_ids)} comment ids for {len(labels)} cluster labels")
        return [ClusterAssignment(int(comment_id), int(label)) for comment_id, label in zip(comment_ids, labels)]


class KMeansClusterer(BaseClusterer):
    """K-Means clustering of comment vectors.

    Each vector goes to its nearest centroid by Euclidean distance, ties going
    to the lowest cluster index. Results are reproducible for the same input
    order, ``n_clusters`` and ``random_state``.

    Degenerate inputs are not fatal: with no rows nothing is fitted, with
    fewer rows than ``n_clusters`` the model is fitted with one cluster per
    row, and with fewer distinct vectors than ``n_clusters`` some cluster
    ids stay empty. ``degenerate`` is set whenever a cluster id in
    ``[0, n_clusters)`` receives no comment.

    Attributes:
        n_clusters (int): Number of clusters to generate.
        random_state (int): Random seed for centroid initialization.
        n_init (int): Number of centroid seeds tried.
        max_iter (int): Maximum number of iterations for a single run.
        tol (float): Convergence tolerance.
        model (KMeans): The scikit-learn KMeans model after fitting.
        cluster_centers_ (numpy.ndarray): Coordinates of cluster centers.
        labels_ (numpy.ndarray): Cluster labels for each data point.
    """

    def __init__(self, config, logger):
        """
        Initializes the K-Means clusterer.

        Args:
            config: Configuration manager
            logger: Logger instance
        """
        super().__init__(config, logger)

        self.params = config.get_clustering_config()
        self.n_clusters = self.params.get('n_clusters', 5)
        self.random_state = self.params.get('random_state', self.seed)
        self.n_init = self.params.get('n_init', 10)
        self.max_iter = self.params.get('max_iter', 300)
        self.tol = self.params.get('tol', 1e-4)

        self.logger.info(f"Initialized KMeansClusterer with {self.n_clusters} clusters (seed {self.random_state})")

    def fit(self, features):
        """
        Fits the K-Means clustering algorithm to the features.

        Args:
            features: Feature matrix of shape (n_samples, n_features)

        Returns:
            Fitted clusterer
        """
        features = np.asarray(features, dtype=np.float64)
        if features.ndim == 1:
            features = features.reshape(-1, 1)
        n_samples = features.shape[0]

        if n_samples == 0:
            self.model = None
            self.labels_ = np.zeros(0, dtype=int)
            self.cluster_centers_ = np.zeros((0, features.shape[1]))
            self.degenerate = True
            self.logger.warning("No comments to cluster; every cluster is empty")
            return self

        effective_clusters = min(self.n_clusters, n_samples)
        if effective_clusters < self.n_clusters:
            self.logger.warning(
                f"Only {n_samples} comments for {self.n_clusters} clusters; "
                f"fitting {effective_clusters} clusters"
            )

        try:
            start_time = time.time()
            self.logger.info(f"Fitting K-Means with {effective_clusters} clusters to {features.shape} feature matrix")

            self.model = KMeans(
                n_clusters=effective_clusters,
                random_state=self.random_state,
                n_init=self.n_init,
                max_iter=self.max_iter,
                tol=self.tol
            )

            # Fewer distinct points than clusters is reported below instead
            with warnings.catch_warnings():
                warnings.simplefilter('ignore', ConvergenceWarning)
                self.model.fit(features)

            self.cluster_centers_ = self.model.cluster_centers_
            self.labels_ = self.model.labels_.astype(int)

            sizes = self.cluster_sizes()
            self.logger.info(f"K-Means cluster distribution: {dict(enumerate(sizes.tolist()))}")

            empty_clusters = [cluster_id for cluster_id, size in enumerate(sizes) if size == 0]
            self.degenerate = bool(empty_clusters)
            if self.degenerate:
                self.logger.warning(f"Degenerate clustering: clusters {empty_clusters} received no comments")

            elapsed_time = time.time() - start_time
            self.logger.info(f"K-Means clustering completed in {elapsed_time:.2f} seconds")

            return self

        except Exception as e:
            self.logger.error(f"Error during K-Means clustering: {str(e)}")
            raise RuntimeError(f"K-Means clustering failed: {str(e)}")

    def predict(self, features):
        """
        Predicts cluster assignments for features.

        Args:
            features: Feature matrix

        Returns:
            Cluster assignments
        """
        if self.model is None:
            raise RuntimeError("K-Means model must be fitted on at least one comment before calling predict()")

        try:
            self.logger.info(f"Predicting clusters for {np.shape(features)} feature matrix")
            return self.model.predict(np.asarray(features, dtype=np.float64)).astype(int)

        except Exception as e:
            self.logger.error(f"Error predicting K-Means clusters: {str(e)}")
            raise RuntimeError(f"K-Means prediction failed: {str(e)}")

    def cluster_sizes(self):
        """Number of comments per cluster id, for every id in ``[0, n_clusters)``."""
        return np.bincount(self.get_labels(), minlength=self.n_clusters)


def create_clusterer(config, logger):
    """
    Creates the clusterer named by ``clustering.algorithm``.

    Args:
        config: Configuration manager
        logger: Logger instance

    Returns:
        BaseClusterer
    """
    algorithm = config.get_clustering_config().get('algorithm', 'kmeans').lower()
    if algorithm == 'kmeans':
        return KMeansClusterer(config, logger)
    logger.error(f"Unknown clustering algorithm: {algorithm}")
    raise ValueError(f"Unknown clustering algorithm: {algorithm}")


class BaseLabelPolicy:
    """Maps a cluster to a coarse sentiment bucket (Good, Bad or Other)."""

    def label(self, cluster_id, centroid=None):
        """
        Args:
            cluster_id: Cluster id
            centroid: Optional cluster centroid, for policies that inspect it

        Returns:
            str: One of GOOD, BAD, OTHER
        """
        raise NotImplementedError("label() must be implemented by subclasses")

    def __call__(self, cluster_id, centroid=None):
        return self.label(cluster_id, centroid)


class FixedLabelPolicy(BaseLabelPolicy):
    """Hard-coded convention: one cluster id is Good, another is Bad.

    Nothing checks that these clusters actually carry positive or negative
    comments; k-means ids only reflect initialization order.
    """

    def __init__(self, good_cluster=0, bad_cluster=1):
        if good_cluster == bad_cluster:
            raise ValueError("good_cluster and bad_cluster must differ")
        self.good_cluster = good_cluster
        self.bad_cluster = bad_cluster

    def label(self, cluster_id, centroid=None):
        if cluster_id == self.good_cluster:
            return GOOD
        if cluster_id == self.bad_cluster:
            return BAD
        return OTHER


def create_label_policy(config):
    """Builds the label policy from the ``labeling`` configuration section."""
    labeling = config.get_labeling_config()
    policy = labeling.get('policy', 'fixed')
    if policy != 'fixed':
        raise ValueError(f"Unknown labeling policy: {policy}")
    return FixedLabelPolicy(
        good_cluster=labeling.get('good_cluster', 0),
        bad_cluster=labeling.get('bad_cluster', 1)
    )
