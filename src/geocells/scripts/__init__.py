"""Command-line diagnostics for geocells coverings."""
