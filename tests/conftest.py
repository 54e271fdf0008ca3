import pytest

from ll1_parser import Grammar


@pytest.fixture
def expression_grammar():
    """E -> E + T | T, T -> id"""
    return Grammar.from_payload({
        "order": ["E", "T"],
        "productions_set": {
            "E": ["E + T", "T"],
            "T": ["id"],
        },
    })


@pytest.fixture
def arithmetic_grammar():
    """The classic left-recursive expression grammar with * and parentheses."""
    return Grammar.from_payload({
        "order": ["E", "T", "F"],
        "productions_set": {
            "E": ["E + T", "T"],
            "T": ["T * F", "F"],
            "F": ["( E )", "id"],
        },
    })
