"""Tests for model stores and the proxyable check."""

import datetime
import decimal
import pathlib

from echofx import is_proxyable, is_proxy, register_atomic, wrap
from echofx.store import AttributeStore, ItemStore, store_for


class Account:
    kind = "basic"

    def __init__(self):
        self.balance = 0
        self._owner = "ann"

    @property
    def owner(self):
        return self._owner

    @owner.setter
    def owner(self, value):
        self._owner = value.lower()

    def describe(self):
        return f"{self.owner}:{self.balance}"


class Slotted:
    __slots__ = ("v",)

    def __init__(self, v):
        self.v = v


class TestProxyable:
    def test_containers_and_objects(self):
        assert is_proxyable({})
        assert is_proxyable([])
        assert is_proxyable(Account())
        assert is_proxyable(Slotted(1))

    def test_atomic_values(self):
        for value in (None, 1, 1.5, True, "s", b"b", (1,), frozenset(), datetime.date.today(),
                      decimal.Decimal("1"), pathlib.Path(".")):
            assert not is_proxyable(value), value

    def test_callables_and_classes(self):
        assert not is_proxyable(lambda: 1)
        assert not is_proxyable(Account)
        assert not is_proxyable(Account().describe)

    def test_register_atomic(self):
        class Money:
            def __init__(self, cents):
                self.cents = cents

        assert is_proxyable(Money(1))
        register_atomic(Money)
        assert not is_proxyable(Money(1))
        proxy = wrap({"price": Money(5)}, lambda *a: None)
        assert not is_proxy(proxy["price"])


class TestItemStore:
    def test_store_for(self):
        assert isinstance(store_for({}), ItemStore)
        assert isinstance(store_for([]), ItemStore)
        assert isinstance(store_for(Account()), AttributeStore)

    def test_mapping(self):
        store = ItemStore({"a": 1})
        assert store.has("a")
        assert not store.has("b")
        store.write("b", 2)
        assert store.read("b") == 2
        store.delete("a")
        assert store.model == {"b": 2}

    def test_sequence_has(self):
        store = ItemStore([10, 20])
        assert store.has(0)
        assert store.has(1)
        assert not store.has(2)
        assert not store.has(-1)
        assert not store.has("0")


class TestAttributeStore:
    def test_has_includes_class_attributes(self):
        store = AttributeStore(Account())
        assert store.has("balance")
        assert store.has("kind")
        assert store.has("describe")
        assert store.has("owner")
        assert not store.has("missing")

    def test_has_does_not_run_getters(self):
        calls = []

        class Lazy:
            @property
            def value(self):
                calls.append(1)
                return 1

        assert AttributeStore(Lazy()).has("value")
        assert calls == []

    def test_method_rebound_to_receiver(self):
        account = Account()
        receiver = object()
        method = AttributeStore(account).read("describe", receiver)
        assert method.__self__ is receiver

    def test_setter_runs_through_wrapper(self):
        account = Account()
        events = []
        proxy = wrap(account, lambda target, key, detail=None: events.append((key, detail)))
        proxy.owner = "BOB"
        assert account.owner == "bob"
        # the setter's own write is intercepted, then the property itself reports
        assert events == [
            ("_owner", {"old_value": "ann", "new_value": "bob"}),
            ("owner", {"old_value": "ann", "new_value": "BOB"}),
        ]

    def test_class_attribute_write_is_a_change(self):
        account = Account()
        events = []
        proxy = wrap(account, lambda target, key, detail=None: events.append((key, detail)))
        proxy.kind = "gold"
        assert account.kind == "gold"
        assert Account.kind == "basic"
        assert events == [("kind", {"old_value": "basic", "new_value": "gold"})]

    def test_slotted_object(self):
        obj = Slotted(1)
        events = []
        proxy = wrap(obj, lambda target, key, detail=None: events.append((key, detail)))
        proxy.v = 2
        assert obj.v == 2
        assert events == [("v", {"old_value": 1, "new_value": 2})]
