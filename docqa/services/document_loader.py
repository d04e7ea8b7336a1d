"""Document loading service for plain-text files."""
import logging
import os

from docqa.errors import InvalidConfiguration
from docqa.models.document import Document

logger = logging.getLogger(__name__)


class DocumentLoader:
    """Loads a UTF-8 text file into a Document."""

    def __init__(self, encoding: str = "utf-8"):
        """
        Initialize DocumentLoader.

        Args:
            encoding: Text encoding of the document files
        """
        self.encoding = encoding

    def load(self, filepath: str) -> Document:
        """
        Load a single text file.

        Args:
            filepath: Path to the document

        Returns:
            Document whose source is the file name

        Raises:
            InvalidConfiguration: If the path does not point to a readable file
        """
        if not os.path.isfile(filepath):
            logger.error(f"Document not found: {filepath}")
            raise InvalidConfiguration(f"Document not found: {filepath}")

        logger.info(f"Reading document {filepath}")
        try:
            with open(filepath, "r", encoding=self.encoding) as handle:
                text = handle.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read document {filepath}: {str(e)}")
            raise InvalidConfiguration(f"Cannot read document {filepath}: {e}") from e

        document = Document(source=os.path.basename(filepath), text=text)
        logger.info(f"Loaded {document.source}: {len(text)} characters")
        return document
