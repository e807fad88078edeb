import os
import re
import logging
from typing import List, NamedTuple, Optional

import nltk
import pandas as pd
from nltk.corpus import stopwords
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS


class IngestionError(Exception):
    """Exception raised when the comments file cannot be ingested."""
    pass


class Comment(NamedTuple):
    """One customer comment; ``id`` is the zero-based row index."""
    id: int
    text: str


def clean_text_value(value):
    """Returns ``value`` as a string; None, NaN and NA become an empty string."""
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def load_default_stopwords(language='english', logger=None):
    """
    Loads the NLTK stop-word list for a language.

    The corpus is downloaded quietly if it is missing. When it still cannot be
    loaded, scikit-learn's English list is used instead (empty for other
    languages).

    Args:
        language: NLTK stop-word language name
        logger: Optional logger instance

    Returns:
        set: Stop words
    """
    logger = logger or logging.getLogger(__name__)
    try:
        return set(stopwords.words(language))
    except LookupError:
        logger.info("NLTK stopwords corpus not found, attempting download")

    try:
        if nltk.download('stopwords', quiet=True):
            return set(stopwords.words(language))
    except (LookupError, OSError) as e:
        logger.warning(f"NLTK stopwords still unavailable after download: {e}")

    if language == 'english':
        logger.warning("Using scikit-learn English stop words instead of NLTK corpus")
        return set(ENGLISH_STOP_WORDS)

    logger.warning(f"No stop words available for language '{language}'; stop-word removal disabled")
    return set()


class DataProcessor:
    """Loads the comments file into memory."""

    def __init__(self, config, logger):
        """
        Initializes the data processor.

        Args:
            config: Configuration manager
            logger: Logger instance
        """
        self.config = config
        self.logger = logger
        self.input_file = config.get_input_file_path()
        self.text_column = config.get_text_column()
        self.input_options = config.get_input_options()
        self.logger.info("DataProcessor initialized")

    def load_data(self, file_path=None):
        """
        Loads the delimited comments file into a pandas DataFrame.

        Every column is read as text so that numeric-looking comments are
        kept verbatim. Rows are neither deduplicated nor reordered; a row with
        more fields than the header is kept with its extra fields dropped.

        Args:
            file_path: Optional path to override the configured input file.

        Returns:
            pandas.DataFrame with at least the configured text column

        Raises:
            IngestionError: If the file is missing, unreadable or lacks the text column
        """
        filepath = file_path or self.input_file
        self.logger.info(f"Loading comments from {filepath}")

        if not filepath or not os.path.isfile(filepath):
            self.logger.error(f"File not found: {filepath}")
            raise IngestionError(f"File not found: {filepath}")

        sep = self.input_options.get('delimiter', ',')
        encoding = self.input_options.get('encoding', 'utf-8')

        try:
            header = pd.read_csv(filepath, sep=sep, encoding=encoding, nrows=0).columns
            malformed_rows = []

            def truncate_row(fields):
                # Extra fields are dropped, keeping the columns named in the header
                malformed_rows.append(fields)
                return fields[:len(header)]

            df = pd.read_csv(
                filepath,
                sep=sep,
                encoding=encoding,
                dtype=str,
                engine='python',
                on_bad_lines=truncate_row
            )
        except pd.errors.EmptyDataError:
            self.logger.error(f"File is empty (no header row): {filepath}")
            raise IngestionError(f"File is empty (no header row): {filepath}")
        except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
            self.logger.error(f"Error reading {filepath}: {str(e)}")
            raise IngestionError(f"Failed to read {filepath}: {str(e)}")

        if self.text_column not in df.columns:
            self.logger.error(
                f"Required column '{self.text_column}' not found. Available columns: {list(df.columns)}"
            )
            raise IngestionError(f"Required column '{self.text_column}' not found in {filepath}")

        self.logger.info(f"Loaded dataset with {df.shape[0]} rows and {df.shape[1]} columns")

        if malformed_rows:
            self.logger.warning(
                f"{len(malformed_rows)} rows had more than {len(header)} fields; "
                f"extra fields were dropped"
            )

        missing = int(df[self.text_column].isna().sum())
        if missing:
            self.logger.warning(f"{missing} rows have an empty '{self.text_column}' value; treating them as empty text")

        return df

    def to_comments(self, dataframe) -> List[Comment]:
        """
        Converts the loaded DataFrame into Comment records, one per row.

        Args:
            dataframe: DataFrame returned by load_data

        Returns:
            list of Comment
        """
        texts = dataframe[self.text_column].tolist() if len(dataframe) else []
        return [Comment(index, clean_text_value(text)) for index, text in enumerate(texts)]

    def load_comments(self, file_path=None):
        """Loads the input file and returns ``(dataframe, comments)``."""
        dataframe = self.load_data(file_path)
        return dataframe, self.to_comments(dataframe)


class RegexTokenizer:
    """Splits text into tokens on runs of non-alphanumeric characters."""

    DEFAULT_PATTERN = r'[\W_]+'

    def __init__(self, pattern=DEFAULT_PATTERN, lowercase=True, min_token_length=1):
        self.pattern = re.compile(pattern)
        self.lowercase = lowercase
        self.min_token_length = min_token_length

    def tokenize(self, text) -> List[str]:
        """
        Tokenizes one text.

        Args:
            text: Raw text; None, NaN and non-strings are treated as empty

        Returns:
            list of non-empty tokens in order of appearance
        """
        text = clean_text_value(text)
        if not text:
            return []
        if self.lowercase:
            text = text.lower()
        return [token for token in self.pattern.split(text)
                if token and len(token) >= self.min_token_length]


class StopWordFilter:
    """Removes stop words from a token sequence, preserving order."""

    def __init__(self, stop_words=None, language='english', case_sensitive=False, logger=None):
        """
        Args:
            stop_words: Iterable of stop words; defaults to the NLTK list for ``language``
            language: Language of the default stop-word list
            case_sensitive: Whether matching respects case
            logger: Optional logger instance
        """
        if stop_words is None:
            stop_words = load_default_stopwords(language, logger)
        self.case_sensitive = case_sensitive
        if case_sensitive:
            self.stop_words = frozenset(stop_words)
        else:
            self.stop_words = frozenset(word.lower() for word in stop_words)

    def filter(self, tokens) -> List[str]:
        if self.case_sensitive:
            return [token for token in tokens if token not in self.stop_words]
        return [token for token in tokens if token.lower() not in self.stop_words]


class TextPreprocessor:
    """Tokenization followed by stop-word removal, configured from the preprocessing section."""

    def __init__(self, config, logger=None, tokenizer: Optional[RegexTokenizer] = None,
                 stop_word_filter: Optional[StopWordFilter] = None):
        """
        Initializes the text preprocessor.

        Args:
            config: Configuration manager
            logger: Optional logger instance
            tokenizer: Optional tokenizer overriding the configured one
            stop_word_filter: Optional filter overriding the configured one
        """
        self.config = config
        self.preprocessing_options = config.get_preprocessing_options()
        self.logger = logger or logging.getLogger(__name__)

        self.tokenizer = tokenizer or RegexTokenizer(
            pattern=self.preprocessing_options.get('split_pattern', RegexTokenizer.DEFAULT_PATTERN),
            lowercase=self.preprocessing_options.get('lowercase', True),
            min_token_length=self.preprocessing_options.get('min_token_length', 1)
        )

        self.stop_word_filter = stop_word_filter
        if self.stop_word_filter is None and self.preprocessing_options.get('remove_stopwords', True):
            stop_words = self.preprocessing_options.get('stopwords')
            if stop_words is None:
                stop_words = load_default_stopwords(
                    self.preprocessing_options.get('stopwords_language', 'english'), self.logger
                )
            stop_words = set(stop_words) | set(self.preprocessing_options.get('custom_stopwords') or [])
            self.stop_word_filter = StopWordFilter(
                stop_words,
                case_sensitive=self.preprocessing_options.get('case_sensitive', False)
            )

    def preprocess_text(self, text) -> List[str]:
        """
        Tokenizes one text and removes its stop words.

        Args:
            text: Raw comment text

        Returns:
            Filtered token list
        """
        tokens = self.tokenizer.tokenize(text)
        if self.stop_word_filter is not None:
            tokens = self.stop_word_filter.filter(tokens)
        return tokens

    def preprocess_corpus(self, texts) -> List[List[str]]:
        """Preprocesses every text of the corpus, keeping input order."""
        corpus = [self.preprocess_text(text) for text in texts]
        token_count = sum(len(tokens) for tokens in corpus)
        self.logger.info(f"Preprocessed {len(corpus)} comments into {token_count} tokens")
        return corpus
