"""Tabular extraction of screener symbols.

Parses the raw CSV export with pandas and projects the symbol column.
Columns are looked up by header name so column reordering on the report
side does not matter.

Two failure modes are deliberately asymmetric:
    - A row without a symbol value is skipped silently.
    - Content pandas cannot read as delimited text at all is fatal.
"""

import io

import pandas as pd

from config.settings import GlobalConfig, get_config
from src.exceptions import MalformedExportError
from src.logger import get_logger
from src.models import ExportedTable

log = get_logger(__name__)


class TableExtractor:
    """Turns an ExportedTable into the ordered list of extracted symbols.

    Attributes:
        config: GlobalConfig providing the symbol column header.
    """

    def __init__(self, config: GlobalConfig | None = None) -> None:
        self.config = config or get_config()

    def read_table(self, table: ExportedTable) -> pd.DataFrame:
        """Parse the export into a DataFrame of strings.

        Every cell is read as text; empty and short cells become "".
        Headers stay bound to their own column even when every row ends
        with a trailing delimiter.

        Raises:
            MalformedExportError: If the bytes are not delimited text.
        """
        try:
            frame = pd.read_csv(
                io.BytesIO(table.content),
                encoding=table.encoding,
                dtype=str,
                index_col=False,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except pd.errors.EmptyDataError as exc:
            raise MalformedExportError(table.filename, "no header row") from exc
        except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as exc:
            raise MalformedExportError(table.filename, str(exc)) from exc

        return frame.fillna("")

    def extract_symbols(self, table: ExportedTable) -> list[str]:
        """Return trimmed, non-empty symbols in row order.

        Duplicates are kept. A header without the symbol column yields an
        empty list.

        Raises:
            MalformedExportError: If the bytes are not delimited text.
        """
        frame = self.read_table(table)
        column = self.config.symbol_column

        if column not in frame.columns:
            log.warning(
                "Symbol column missing from export",
                column=column,
                columns=list(frame.columns),
            )
            return []

        symbols = [value for value in frame[column].str.strip() if value]

        log.info(
            "Symbols extracted from export",
            rows=len(frame),
            symbols=len(symbols),
            skipped=len(frame) - len(symbols),
        )
        return symbols
