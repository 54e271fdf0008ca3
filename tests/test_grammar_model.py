import pytest

from ll1_parser import (
    Grammar,
    InvalidGrammarPayloadError,
    LAMBDA_SYMBOL,
    Nonterminal,
    ProductionsSetNotFoundError,
    Terminal,
    contains_word,
    remove_element,
    union_symbols,
)


def test_union_keeps_first_seen_order_and_drops_duplicates():
    assert union_symbols(["a", "b", "a"], ["c", "b", "d"]) == ["a", "b", "c", "d"]


def test_union_of_a_list_with_itself_deduplicates():
    assert union_symbols(["x", "x", "y"], ["x", "x", "y"]) == ["x", "y"]


def test_remove_element():
    assert set(remove_element(["+", LAMBDA_SYMBOL, "+"], LAMBDA_SYMBOL)) == {"+"}
    assert remove_element([], LAMBDA_SYMBOL) == []


def test_contains_word_matches_whole_tokens_only():
    assert contains_word("T E'", "E'")
    assert not contains_word("T E'", "E")
    assert not contains_word("id", "i")


def test_index_of_nonterminal(expression_grammar):
    assert expression_grammar.index_of_nonterminal("E") == 0
    assert expression_grammar.index_of_nonterminal("T") == 1
    assert expression_grammar.index_of_nonterminal("X") == -1


def test_index_of_production(expression_grammar):
    assert expression_grammar.index_of_production("E", "T") == 1
    assert expression_grammar.index_of_production("E", "id") == -1
    assert expression_grammar.index_of_production("X", "id") == -1


def test_add_production_group_appends_new_nonterminal():
    grammar = Grammar()
    grammar.add_production_group("  S ", ["a", "b"])

    assert grammar.order == ["S"]
    assert grammar.productions == {"S": ["a", "b"]}


def test_add_production_group_unions_into_existing_set():
    grammar = Grammar(order=["S"], productions={"S": ["a"]})
    grammar.add_production_group("S", ["b", "a"])

    assert grammar.order == ["S"]
    assert grammar.productions["S"] == ["a", "b"]


def test_add_production_group_uses_order_membership():
    grammar = Grammar(order=["S", "A"], productions={"S": ["A"]})
    grammar.add_production_group("A", ["x"])

    assert grammar.order == ["S", "A"]
    assert grammar.productions["A"] == ["x"]


def test_has_left_recursion_is_a_literal_prefix_test(expression_grammar):
    assert expression_grammar.has_left_recursion("E", ["E + T"])
    assert expression_grammar.has_left_recursion("A", ["AB x"])
    assert not expression_grammar.has_left_recursion("T", ["id"])


def test_resolve_production_tags_symbols(expression_grammar):
    assert expression_grammar.resolve_production("E + T") == [
        Nonterminal("E"), Terminal("+"), Nonterminal("T")]


def test_declared_but_undefined_nonterminal_is_not_a_terminal():
    grammar = Grammar(order=["S", "A"], productions={"S": ["A b"]})

    assert grammar.is_nonterminal("A")
    assert grammar.is_terminal("b")
    assert grammar.undefined_nonterminals() == ["A"]
    with pytest.raises(ProductionsSetNotFoundError) as excinfo:
        grammar.validate()
    assert excinfo.value.nonterminal == "A"


def test_start_symbol():
    assert Grammar(order=["S", "A"]).start_symbol == "S"
    assert Grammar().start_symbol is None


def test_from_payload_normalizes_productions():
    grammar = Grammar.from_payload({
        "order": [" S "],
        "productions_set": {" S": ["  a   B ", ""], "B": ["b"]},
    })

    assert grammar.order == ["S", "B"]
    assert grammar.productions["S"] == ["a B", LAMBDA_SYMBOL]


def test_from_payload_without_order_uses_key_order():
    grammar = Grammar.from_payload({"productions_set": {"S": ["A"], "A": ["a"]}})
    assert grammar.order == ["S", "A"]


@pytest.mark.parametrize("payload", [
    None,
    [],
    {"order": ["S"]},
    {"order": "S", "productions_set": {"S": ["a"]}},
    {"order": ["S"], "productions_set": {"S": "a"}},
    {"order": ["S"], "productions_set": {"S": [1]}},
    {"order": ["S"], "productions_set": {" ": ["a"]}},
])
def test_from_payload_rejects_malformed_input(payload):
    with pytest.raises(InvalidGrammarPayloadError):
        Grammar.from_payload(payload)


def test_to_payload_round_trips_wire_shape(expression_grammar):
    assert expression_grammar.to_payload() == {
        "order": ["E", "T"],
        "productions_set": {"E": ["E + T", "T"], "T": ["id"]},
    }


def test_copy_is_independent(expression_grammar):
    clone = expression_grammar.copy()
    clone.productions["E"].append("x")
    clone.order.append("X")

    assert expression_grammar.productions["E"] == ["E + T", "T"]
    assert expression_grammar.order == ["E", "T"]


def test_str_lists_rules(expression_grammar):
    assert str(expression_grammar) == "E -> E + T | T\nT -> id"
