import pytest

from ll1_parser import InvalidGrammarPayloadError, LAMBDA_SYMBOL, parse_grammar_text


def test_reads_rules_and_alternatives():
    grammar = parse_grammar_text("""
        # assignment
        AL -> id := P
        P -> P or D | D
        D -> id
    """)

    assert grammar.order == ["AL", "P", "D"]
    assert grammar.productions["P"] == ["P or D", "D"]
    assert grammar.start_symbol == "AL"


def test_empty_alternative_spellings_become_lambda():
    grammar = parse_grammar_text("S -> a S | ε\nA -> eps | λ |")

    assert grammar.productions["S"] == ["a S", LAMBDA_SYMBOL]
    assert grammar.productions["A"] == [LAMBDA_SYMBOL]


def test_repeated_left_sides_merge():
    grammar = parse_grammar_text("S -> a\nS -> b | a")

    assert grammar.order == ["S"]
    assert grammar.productions["S"] == ["a", "b"]


@pytest.mark.parametrize("text", ["S a b", " -> a", "", "# only a comment"])
def test_rejects_text_without_rules(text):
    with pytest.raises(InvalidGrammarPayloadError):
        parse_grammar_text(text)


def test_error_names_the_line():
    with pytest.raises(InvalidGrammarPayloadError, match="line 2"):
        parse_grammar_text("S -> a\nbroken")
