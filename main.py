#!/usr/bin/env python3
"""
Main entry point for the customer comments analysis job.

This module runs the whole batch: it loads the comments file, tokenizes and
filters the text, trains word vectors, clusters the comment vectors, labels
the clusters as good or bad, and renders the chart and table outputs.
"""

import os
import sys
import time
import traceback
from datetime import datetime

import yaml

from config import ConfigManager, ConfigurationError, configure_argument_parser
from comments_analysis.utilities import Logger, PerformanceMonitor
from comments_analysis.data_processor import DataProcessor, TextPreprocessor, IngestionError
from comments_analysis.feature_extraction import Word2VecEmbedder, FeatureAssembler
from comments_analysis.classifier import create_clusterer, create_label_policy
from comments_analysis.reporting import ReportBuilder, CommentsVisualizer


class CommentsAnalysisPipeline:
    """Pipeline for the comments analysis process."""

    def __init__(self, config_file=None, cli_args=None, config=None):
        """
        Initializes the analysis pipeline.

        Args:
            config_file: Path to the configuration file
            cli_args: Command line arguments
            config: Optional ready ConfigManager, used instead of loading one
        """
        self.config_file = config_file
        self.cli_args = cli_args
        self.config = config
        self.logger = None
        self.performance_monitor = None
        self.data_processor = None
        self.text_preprocessor = None
        self.embedder = None
        self.feature_assembler = None
        self.clusterer = None
        self.label_policy = None
        self.report_builder = None
        self.visualizer = None
        self.initialized = False
        self.start_time = datetime.now()
        self.report = None
        self.output_paths = {}

    def setup(self):
        """Sets up the pipeline components."""
        try:
            if self.config is None:
                self.config = ConfigManager(self.config_file, self.cli_args)

            self.logger = Logger(self.config).logger
            self.logger.info(f"Comments analysis setup started at {self.start_time}")

            self.performance_monitor = PerformanceMonitor()
            self.performance_monitor.start_timer('setup')

            self.logger.info(f"Input file: {self.config.get_input_file_path()}")
            self.logger.info(f"Output file: {self.config.get_output_file_path()}")
            self.logger.info(f"Results directory: {self.config.get_results_dir()}")

            self.initialize_components()

            self.initialized = True
            self.performance_monitor.stop_timer('setup')

            return True

        except Exception as e:
            if self.logger:
                self.logger.error(f"Error during setup: {str(e)}")
                self.logger.error(traceback.format_exc())
            else:
                print(f"Error during setup: {str(e)}")
                print(traceback.format_exc())
            return False

    def initialize_components(self):
        """Initializes all components of the pipeline."""
        self.logger.info("Initializing pipeline components")

        self.data_processor = DataProcessor(self.config, self.logger)
        self.text_preprocessor = TextPreprocessor(self.config, self.logger)
        self.embedder = Word2VecEmbedder(self.config, self.logger)
        self.feature_assembler = FeatureAssembler(self.logger)
        self.clusterer = create_clusterer(self.config, self.logger)
        self.label_policy = create_label_policy(self.config)
        self.report_builder = ReportBuilder(self.logger)
        self.visualizer = CommentsVisualizer(self.config, self.logger, self.config.get_results_dir())

        self.logger.info("Pipeline components initialized successfully")

    def analyze(self, comments):
        """
        Runs the text-to-cluster pipeline on loaded comments.

        Args:
            comments: list of Comment

        Returns:
            tuple: (Report, list of ClusterAssignment)
        """
        if not self.initialized and not self.setup():
            raise RuntimeError("Pipeline setup failed")

        self.performance_monitor.start_timer('preprocess')
        corpus = self.text_preprocessor.preprocess_corpus([comment.text for comment in comments])
        self.performance_monitor.stop_timer('preprocess')

        self.performance_monitor.start_timer('embed')
        vectors = self.embedder.fit_transform(corpus)
        features = self.feature_assembler.assemble({'comment_vector': vectors})
        self.performance_monitor.stop_timer('embed')

        self.performance_monitor.start_timer('cluster')
        self.clusterer.fit(features)
        assignments = self.clusterer.get_assignments([comment.id for comment in comments])
        self.performance_monitor.stop_timer('cluster')

        self.performance_monitor.start_timer('report')
        report = self.report_builder.build(
            comments, assignments, self.label_policy, self.clusterer.get_cluster_centers()
        )
        self.performance_monitor.stop_timer('report')

        return report, assignments

    def run(self):
        """
        Executes the complete analysis.

        Nothing is written when the comments file cannot be ingested.

        Returns:
            bool: True if the pipeline ran successfully, False otherwise
        """
        if not self.initialized:
            if not self.setup():
                if self.logger:
                    self.logger.error("Pipeline setup failed, aborting")
                else:
                    print("Pipeline setup failed, aborting")
                return False

        try:
            self.logger.info("Starting comments analysis")
            self.performance_monitor.start_timer('total_pipeline')

            self.performance_monitor.start_timer('load')
            dataframe, comments = self.data_processor.load_comments()
            self.performance_monitor.stop_timer('load')

            report, assignments = self.analyze(comments)
            self.report = report

            if not self.save_results(dataframe, assignments):
                return False

            self.performance_monitor.start_timer('present')
            self.output_paths = self.visualizer.render(report)
            self.performance_monitor.stop_timer('present')

            failed_outputs = [name for name, path in self.output_paths.items() if path is None]
            if failed_outputs:
                self.logger.warning(f"Some outputs could not be written: {failed_outputs}")

            total_time = self.performance_monitor.stop_timer('total_pipeline')
            self.logger.info(
                f"Comments analysis completed in {total_time:.2f} seconds: "
                f"{report.good_count} good, {report.bad_count} bad, {report.total_comments} total"
            )
            self.log_performance()
            self.cleanup()

            return True

        except IngestionError as e:
            self.logger.error(f"Could not ingest comments: {str(e)}")
            self.cleanup(error=True)
            return False

        except Exception as e:
            self.logger.error(f"Critical error during pipeline execution: {str(e)}")
            self.logger.error(traceback.format_exc())
            self.cleanup(error=True)
            return False

    def save_results(self, dataframe, assignments):
        """
        Saves the input rows with their cluster id and bucket as CSV.

        Args:
            dataframe: Loaded input DataFrame
            assignments: list of ClusterAssignment in row order

        Returns:
            bool: True if results were saved successfully, False otherwise
        """
        output_file = self.config.get_output_file_path()
        if not output_file:
            self.logger.info("No output file configured, skipping clustered comments export")
            return True

        try:
            output_dir = os.path.dirname(output_file)
            if output_dir:
                os.makedirs(output_dir, exist_ok=True)

            result = dataframe.copy()
            result['prediction'] = [assignment.cluster_id for assignment in assignments]
            result['bucket'] = self.report_builder.label_assignments(
                assignments, self.label_policy, self.clusterer.get_cluster_centers()
            )
            result.to_csv(output_file, index=False)

            self.logger.info(f"Saved {len(result)} clustered comments to {output_file}")
            return True

        except OSError as e:
            self.logger.error(f"Failed to save results to {output_file}: {str(e)}")
            return False

    def log_performance(self):
        """Logs the time and memory of every finished stage."""
        self.logger.info("Performance summary:")
        for line in self.performance_monitor.summary():
            self.logger.info(f"  - {line}")

    def cleanup(self, error=False):
        """
        Logs final memory usage.

        Args:
            error: Whether the cleanup is being called after an error
        """
        if error:
            self.logger.info("Cleaning up after failure")

        if self.performance_monitor:
            self.logger.info(f"Final memory usage: {self.performance_monitor.rss_mb():.2f} MB RSS")


def parse_arguments(argv=None):
    """
    Parses command line arguments.

    Returns:
        Parsed arguments
    """
    parser = configure_argument_parser()

    parser.add_argument('--export-config', dest='export_config',
                        help='Export the complete configuration to a file')

    args = parser.parse_args(argv)

    if not args.config_file:
        default_path = "config.yaml"
        if os.path.exists(default_path):
            args.config_file = default_path

    return args


def main(argv=None):
    """
    Main entry point for the application.

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    args = parse_arguments(argv)

    if args.config_file and not os.path.exists(args.config_file):
        print(f"Error: Configuration file not found: {args.config_file}")
        return 1

    start_time = time.time()
    print(f"Starting comments analysis at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    try:
        config = ConfigManager(args.config_file, args)
    except ConfigurationError as e:
        print(f"Error: {str(e)}")
        return 1

    try:
        pipeline = CommentsAnalysisPipeline(args.config_file, args, config=config)
        success = pipeline.run()

        if args.export_config:
            with open(args.export_config, 'w', encoding='utf-8') as f:
                yaml.safe_dump(config.as_dict(), f, default_flow_style=False)
            print(f"Complete configuration exported to {args.export_config}")

        elapsed_time = time.time() - start_time
        print(f"Comments analysis completed in {elapsed_time:.2f} seconds")
        print(f"Status: {'Success' if success else 'Failed'}")

        return 0 if success else 1

    except KeyboardInterrupt:
        print("\nProcess interrupted by user.")
        return 130
    except Exception as e:
        print(f"Error in main process: {str(e)}")
        print(traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
