"""
Visualization and Output Formatting Module

This module renders the FIRST, FOLLOW and prediction tables produced by the
LL(1) grammar engine as HTML, together with grammar error messages.
"""

from typing import Dict, List, Optional
from dataclasses import dataclass
import html

from ll1_parser import LL1Result, LAMBDA_SYMBOL


@dataclass
class VisualizationConfig:
    """Configuration options for visualization output."""
    table_css_classes: str = "ll1-table"
    error_css_classes: str = "error-message"
    include_inline_styles: bool = True
    symbol_separator: str = ", "


class LL1TableGenerator:
    """Generates HTML tables mapping nonterminals to symbol sets."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def generate_set_table_html(self, title: str, table: Dict[str, List[str]],
                                order: Optional[List[str]] = None) -> str:
        """
        Generate an HTML table for one nonterminal -> symbol set mapping.

        Args:
            title: Header of the symbol set column (e.g. "First")
            table: Dictionary mapping a nonterminal to its symbols
            order: Row order; nonterminals missing from it are appended

        Returns:
            HTML string containing the table
        """
        if not table:
            return self._generate_empty_table_html(f"No {title} data")

        rows = [name for name in (order or []) if name in table]
        rows.extend(name for name in table if name not in rows)

        html_lines = []
        html_lines.append(f'<table class="grammar-table {self.config.table_css_classes}" role="table" aria-label="{html.escape(title)} sets">')
        html_lines.append('<thead>')
        html_lines.append('<tr>')
        html_lines.append('<th class="grammar-table-header grammar-table-header-primary" scope="col">Nonterminal</th>')
        html_lines.append(f'<th class="grammar-table-header" scope="col">{html.escape(title)}</th>')
        html_lines.append('</tr>')
        html_lines.append('</thead>')
        html_lines.append('<tbody>')

        for name in rows:
            symbols = self.config.symbol_separator.join(
                self._format_symbol(symbol) for symbol in table[name])
            html_lines.append('<tr>')
            html_lines.append(f'<td class="nonterminal">{html.escape(name)}</td>')
            html_lines.append(f'<td class="symbol-set">{symbols}</td>')
            html_lines.append('</tr>')

        html_lines.append('</tbody>')
        html_lines.append('</table>')

        return '\n'.join(html_lines)

    def _format_symbol(self, symbol: str) -> str:
        if symbol == LAMBDA_SYMBOL:
            return f'<span class="lambda-symbol">{html.escape(symbol)}</span>'
        return html.escape(symbol)

    def _generate_empty_table_html(self, message: str) -> str:
        """Generate HTML for an empty table with a message."""
        html_lines = []
        html_lines.append(f'<div class="{self.config.error_css_classes}">')
        html_lines.append(f'<p>{html.escape(message)}</p>')
        html_lines.append('</div>')
        return '\n'.join(html_lines)

    def _generate_table_styles(self) -> str:
        """Generate inline CSS styles for the tables."""
        return """
<style>
.ll1-table {
    border-collapse: collapse;
    width: 30%;
    margin: 1rem 0;
    font-family: 'Courier New', monospace;
    font-size: 12px;
}

.ll1-table th, .ll1-table td {
    border: 1px solid black;
    padding: 0.5rem;
    text-align: left;
}

.ll1-table td.nonterminal {
    font-weight: bold;
}

.lambda-symbol {
    color: #6b7280;
    font-style: italic;
}
</style>
"""


class ErrorMessageFormatter:
    """Formats grammar error messages."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def format_grammar_error(self, error_message: str) -> str:
        """
        Format a grammar error message as HTML.

        Args:
            error_message: The error message

        Returns:
            Formatted HTML error message
        """
        html_lines = []

        if self.config.include_inline_styles:
            html_lines.append(self._generate_error_styles())

        html_lines.append(f'<div class="{self.config.error_css_classes}">')
        html_lines.append('<h4>Grammar Error</h4>')
        html_lines.append(f'<p class="error-text">{html.escape(error_message)}</p>')
        html_lines.append('</div>')

        return '\n'.join(html_lines)

    def _generate_error_styles(self) -> str:
        """Generate inline CSS styles for error messages."""
        return """
<style>
.error-message {
    color: #cc0000;
    background-color: #ffeeee;
    border: 1px solid #cc0000;
    border-radius: 4px;
    padding: 10px;
    margin: 10px 0;
    font-family: Arial, sans-serif;
}

.error-text {
    font-weight: bold;
    margin: 5px 0;
}
</style>
"""


class VisualizationGenerator:
    """Main visualization generator that combines all formatting capabilities."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()
        self.table_generator = LL1TableGenerator(self.config)
        self.error_formatter = ErrorMessageFormatter(self.config)

    def generate_result_html(self, result: Optional[LL1Result],
                             order: Optional[List[str]] = None) -> str:
        """
        Generate the FIRST, FOLLOW and prediction tables of one analysis.

        Args:
            result: LL1Result holding the three tables
            order: Nonterminal order used for the rows

        Returns:
            HTML string with the three tables
        """
        if result is None or not result.first:
            return self.table_generator._generate_empty_table_html("No data to display")

        html_lines = []
        if self.config.include_inline_styles:
            html_lines.append(self.table_generator._generate_table_styles())

        html_lines.append(self.table_generator.generate_set_table_html("First", result.first, order))
        if result.follow:
            html_lines.append(self.table_generator.generate_set_table_html("Follow", result.follow, order))
        if result.prediction:
            html_lines.append(self.table_generator.generate_set_table_html("Prediction", result.prediction, order))

        return '\n'.join(html_lines)

    def format_error_message(self, error_message: str) -> str:
        """Format an error message."""
        return self.error_formatter.format_grammar_error(error_message)
