import time
from collections import Counter

import numpy as np
from gensim.models import Word2Vec


class BaseEmbedder:
    """Base class for comment embedders.

    An embedder is fitted once on the whole filtered corpus and then maps
    each token list to one fixed-length vector.
    """

    def __init__(self, config, logger):
        """
        Initializes the base embedder.

        Args:
            config: Configuration manager
            logger: Logger instance
        """
        self.config = config
        self.logger = logger
        self.embedding_config = config.get_embedding_config()
        self.options = config.get_options()
        self.seed = self.embedding_config.get('seed', self.options.get('seed', 123))
        self.vector_size = self.embedding_config.get('vector_size', 100)
        self.fitted = False

    def fit(self, corpus):
        """
        Learns the embedding from the corpus.

        Args:
            corpus: List of token lists

        Returns:
            Fitted embedder
        """
        raise NotImplementedError("fit() must be implemented by subclasses")

    def transform(self, corpus):
        """
        Maps each token list to a vector.

        Args:
            corpus: List of token lists

        Returns:
            numpy array of shape (len(corpus), vector_size)
        """
        raise NotImplementedError("transform() must be implemented by subclasses")

    def fit_transform(self, corpus):
        corpus = list(corpus)
        return self.fit(corpus).transform(corpus)


class Word2VecEmbedder(BaseEmbedder):
    """Word2Vec word vectors averaged into one vector per comment.

    Words occurring fewer than ``min_count`` times in the corpus get no
    vector and are skipped at inference time. A comment without any
    in-vocabulary word is mapped to the zero vector.

    Training runs with a single worker by default so that the same corpus,
    parameters and seed always give the same vectors.

    Attributes:
        min_count (int): Minimum corpus frequency for a word to get a vector.
        window (int): Context window size.
        sg (int): 1 for skip-gram, 0 for CBOW.
        epochs (int): Number of training passes over the corpus.
        workers (int): Number of training threads.
        model (Word2Vec): The trained gensim model, or None if the vocabulary was empty.
        vocabulary_empty (bool): True when no word reached ``min_count``.
    """

    def __init__(self, config, logger):
        super().__init__(config, logger)
        self.min_count = self.embedding_config.get('min_count', 5)
        self.window = self.embedding_config.get('window', 5)
        self.sg = self.embedding_config.get('sg', 1)
        self.epochs = self.embedding_config.get('epochs', 5)
        self.workers = self.embedding_config.get('workers', 1)
        self.model = None
        self.word_vectors = None
        self.vocabulary_empty = False

        self.logger.info(
            f"Initialized Word2VecEmbedder with vector_size={self.vector_size}, min_count={self.min_count}"
        )

    def fit(self, corpus):
        corpus = [list(tokens) for tokens in corpus]
        self.model = None
        self.word_vectors = None

        counts = Counter(token for tokens in corpus for token in tokens)
        eligible = [word for word, count in counts.items() if count >= self.min_count]

        if not eligible:
            self.vocabulary_empty = True
            self.fitted = True
            self.logger.warning(
                f"Empty vocabulary: no word occurs at least {self.min_count} times in "
                f"{len(corpus)} comments; every comment vector will be zero"
            )
            return self

        try:
            start_time = time.time()
            self.logger.info(f"Training Word2Vec on {len(corpus)} comments ({sum(counts.values())} tokens)")

            self.model = Word2Vec(
                sentences=corpus,
                vector_size=self.vector_size,
                min_count=self.min_count,
                window=self.window,
                sg=self.sg,
                epochs=self.epochs,
                seed=self.seed,
                workers=self.workers
            )
            self.word_vectors = self.model.wv
            self.vocabulary_empty = len(self.word_vectors) == 0
            self.fitted = True

            elapsed_time = time.time() - start_time
            self.logger.info(
                f"Word2Vec trained in {elapsed_time:.2f} seconds with a vocabulary of {len(self.word_vectors)} words"
            )
            return self

        except Exception as e:
            self.logger.error(f"Error during Word2Vec training: {str(e)}")
            raise RuntimeError(f"Word2Vec training failed: {str(e)}")

    def transform(self, corpus):
        if not self.fitted:
            raise RuntimeError("Word2VecEmbedder must be fitted before calling transform()")

        corpus = list(corpus)
        vectors = np.zeros((len(corpus), self.vector_size), dtype=np.float32)
        if self.word_vectors is None:
            return vectors

        out_of_vocabulary = 0
        for row, tokens in enumerate(corpus):
            known = [self.word_vectors[token] for token in tokens if token in self.word_vectors.key_to_index]
            if known:
                vectors[row] = np.mean(known, axis=0)
            else:
                out_of_vocabulary += 1

        if out_of_vocabulary:
            self.logger.info(f"{out_of_vocabulary} comments have no in-vocabulary word and map to the zero vector")

        return vectors

    @property
    def vocabulary(self):
        """Words that received a vector, most frequent first."""
        if self.word_vectors is None:
            return []
        return list(self.word_vectors.index_to_key)

    def get_word_vector(self, word):
        """Returns a copy of the vector for ``word``, or None if it is out of vocabulary."""
        if self.word_vectors is None or word not in self.word_vectors.key_to_index:
            return None
        return np.array(self.word_vectors[word])


class FeatureAssembler:
    """Concatenates named vector columns into a single feature matrix."""

    def __init__(self, logger=None):
        self.logger = logger

    def assemble(self, columns):
        """
        Assembles feature columns.

        Args:
            columns: Ordered mapping of column name to a 2-D array (one row per
                comment) or a 1-D numeric column. A bare array is treated as a
                single column.

        Returns:
            numpy array of shape (n_rows, total_width)

        Raises:
            ValueError: If no column is given or the row counts differ
        """
        if isinstance(columns, np.ndarray):
            columns = {'features': columns}
        if not columns:
            raise ValueError("At least one feature column is required")

        blocks = []
        n_rows = None
        for name, values in columns.items():
            block = np.asarray(values, dtype=np.float64)
            if block.ndim == 1:
                block = block.reshape(-1, 1)
            elif block.ndim != 2:
                raise ValueError(f"Feature column '{name}' must be 1-D or 2-D, got {block.ndim} dimensions")

            if n_rows is None:
                n_rows = block.shape[0]
            elif block.shape[0] != n_rows:
                raise ValueError(
                    f"Feature column '{name}' has {block.shape[0]} rows, expected {n_rows}"
                )
            blocks.append(block)

        features = blocks[0] if len(blocks) == 1 else np.hstack(blocks)

        if self.logger is not None:
            self.logger.info(f"Assembled {len(blocks)} feature column(s) into shape {features.shape}")
        return features
