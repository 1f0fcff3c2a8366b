"""Command-line interface for tiercache."""
