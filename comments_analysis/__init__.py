from .utilities import Logger, PerformanceMonitor, StageStats
from .data_processor import DataProcessor, TextPreprocessor, RegexTokenizer, StopWordFilter, Comment, IngestionError
from .feature_extraction import BaseEmbedder, Word2VecEmbedder, FeatureAssembler
from .classifier import (
    BaseClusterer,
    KMeansClusterer,
    ClusterAssignment,
    BaseLabelPolicy,
    FixedLabelPolicy,
    create_clusterer,
    create_label_policy,
    GOOD,
    BAD,
    OTHER
)
from .reporting import Report, ReportBuilder, CommentsVisualizer
