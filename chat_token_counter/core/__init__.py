"""
Core modules for the token counter.

This package contains the tokenizer, the message framer, and the
function schema flattener.
"""
