from dbscenario.core.context import Context


def test_background_is_a_shared_root():
    root = Context.background()

    assert root is Context.background()
    assert root.cancelled is False
    assert root.deadline is None
    assert repr(root) == "Context.background()"


def test_values_are_inherited_and_shadowed():
    root = Context.background()
    child = root.with_value("tenant", "acme")
    grandchild = child.with_value("tenant", "other").with_value("user", "ada")

    assert root.value("tenant") is None
    assert child.value("tenant") == "acme"
    assert grandchild.value("tenant") == "other"
    assert grandchild.value("user") == "ada"
    assert child.value("user") is None
    assert grandchild.deadline is None
    assert repr(child) == "Context(values={'tenant': 'acme'})"
