import pytest

from tank import (
    AlreadySingletonError,
    Binding,
    Container,
    InvalidIdentifierTypeError,
    UnboundIdentifierError,
    Value,
    type_name,
)


def test_make_unbound_string_identifier_raises():
    c = Container()
    with pytest.raises(UnboundIdentifierError):
        c.make("unknown-identifier")


def test_unbound_identifier_error_is_a_key_error_with_readable_message():
    c = Container()
    with pytest.raises(KeyError) as ctx:
        c.make("unknown-identifier")
    assert str(ctx.value) == "Identifier `unknown-identifier` is not defined"


def test_make_returns_bound_plain_value():
    c = Container()
    c.bind("logger", "stdout-logger")
    assert c.make("logger") == "stdout-logger"


def test_bind_returns_the_value_passed_in():
    c = Container()

    def factory():
        return 1

    assert c.bind("value", 42) == 42
    assert c.bind("factory", factory) is factory


def test_bind_without_value_binds_none():
    c = Container()
    c.bind("nothing")
    assert c.exists("nothing")
    assert c.make("nothing") is None


def test_bind_class_value_is_not_treated_as_factory():
    c = Container()

    class Mailer: ...

    c.bind("mailer-class", Mailer)
    assert c.make("mailer-class") is Mailer


def test_bind_factory_is_invoked_on_make():
    c = Container()
    c.bind("answer", lambda: 40 + 2)
    assert c.make("answer") == 42


def test_rebind_non_singleton_replaces_value():
    c = Container()
    c.bind("logger", "stdout")
    c.bind("logger", "stderr")
    assert c.make("logger") == "stderr"


def test_bind_instance_derives_identifier_from_type():
    c = Container()

    class Mailer: ...

    mailer = Mailer()
    assert c.bind(mailer) is mailer

    name = type_name(Mailer)
    assert c.exists(Mailer)
    assert c.make(Mailer) is mailer
    assert c.make(name) is mailer
    assert c.make("." + name) is mailer
    assert list(c.get_bindings()) == ["." + name]


def test_bind_builtin_instance_uses_bare_type_name():
    c = Container()
    c.bind(5)
    assert c.exists(7)
    assert c.make("int") == 5


def test_bind_class_identifier():
    c = Container()

    class Mailer: ...

    c.bind(Mailer, "smtp")
    assert c.exists(type_name(Mailer))
    assert c.make(Mailer) == "smtp"


def test_bind_if_keeps_existing_binding():
    c = Container()
    c.bind_if("logger", "first")
    c.bind_if("logger", "second")
    assert c.make("logger") == "first"


def test_bind_if_on_singleton_does_not_raise():
    c = Container()
    c.singleton("db", "primary")
    c.bind_if("db", "replica")
    assert c.make("db") == "primary"


def test_exists_and_bound_are_false_for_unbound_identifiers():
    c = Container()
    assert not c.exists("missing")
    assert not c.bound("missing")
    assert not c.exists(object())


def test_is_singleton():
    c = Container()
    c.bind("plain", 1)
    c.singleton("single", 2)

    assert c.is_singleton("missing") is False
    assert c.is_singleton("plain") is False
    assert c.is_singleton("single") is True


def test_is_singleton_rejects_non_string_identifiers():
    c = Container()
    with pytest.raises(InvalidIdentifierTypeError):
        c.is_singleton(42)
    with pytest.raises(TypeError):
        c.is_singleton(["db"])


def test_remove_is_idempotent():
    c = Container()
    c.bind("logger", "stdout")

    c.remove("logger")
    c.remove("logger")
    c.remove("never-bound")

    assert not c.exists("logger")
    with pytest.raises(UnboundIdentifierError):
        c.make("logger")


def test_remove_singleton_allows_binding_again():
    c = Container()
    c.singleton("db", "primary")
    c.remove("db")
    c.bind("db", "replica")
    assert c.make("db") == "replica"


def test_flush_clears_all_bindings():
    c = Container()

    class Mailer: ...

    c.bind("logger", "stdout")
    c.singleton("db", "primary")
    c.bind(Mailer())

    c.flush()

    assert not c.exists("logger")
    assert not c.exists("db")
    assert not c.exists(Mailer)
    assert c.get_bindings() == {}


def test_flush_forgets_known_classes():
    c = Container()

    class Mailer: ...

    c.bind(Mailer())
    c.flush()

    # The bare spelling is canonical again once the class is forgotten.
    c.bind(type_name(Mailer), "by-name")
    assert list(c.get_bindings()) == [type_name(Mailer)]
    assert c.make(Mailer) == "by-name"


def test_get_bindings_is_a_read_only_snapshot():
    c = Container()
    c.bind("logger", "stdout")

    bindings = c.get_bindings()
    with pytest.raises(TypeError):
        bindings["db"] = Binding(factory=lambda: None, singleton=False)  # type: ignore[index]

    c.bind("db", "primary")
    assert "db" not in bindings

    bindings["logger"].singleton = True
    assert c.is_singleton("logger") is False


def test_get_bindings_exposes_factory_and_flag():
    c = Container()
    c.singleton("db", "primary")

    binding = c.get_bindings()["db"]
    assert binding.singleton is True
    assert binding.factory() == "primary"


def test_failed_bind_leaves_state_untouched():
    c = Container()
    c.singleton("db", "primary")
    before = dict(c.get_bindings())

    with pytest.raises(AlreadySingletonError):
        c.bind("db", "replica")

    assert dict(c.get_bindings()).keys() == before.keys()
    assert c.make("db") == "primary"


def test_value_wrapper_binds_function_as_plain_value():
    c = Container()

    def on_error():
        return "handled"

    c.bind("on-error", Value(on_error))
    c.bind("on-error-called", on_error)

    assert c.make("on-error") is on_error
    assert c.make("on-error-called") == "handled"


def test_factory_returning_value_wrapper_stops_the_chain():
    c = Container()

    def handler():
        return "handled"

    c.bind("handler", lambda: Value(handler))
    assert c.make("handler") is handler


def test_separator_must_not_be_empty():
    with pytest.raises(ValueError, match="separator"):
        Container(separator="")
