import pytest
import redis

from kvops.core import ScriptError
from kvops.values import ValueStore

CLOCK = 1700000000
KEYS = ["2", "minigame1", "game"]
MAIN_KEY = "minigame1:game:player"


class FakeRedis:
    def __init__(self):
        self.hashes = {}
        self.expiry = {}

    def hget(self, name, key):
        return self.hashes.get(name, {}).get(key)

    def hset(self, name, key=None, value=None, mapping=None):
        table = self.hashes.setdefault(name, {})
        pairs = dict(mapping or {})
        if key is not None:
            pairs[key] = value
        added = 0
        for field, item in pairs.items():
            added += field not in table
            table[str(field)] = str(item)
        return added

    def hincrby(self, name, key, amount=1):
        table = self.hashes.setdefault(name, {})
        try:
            current = int(table.get(key, "0"))
        except ValueError:
            raise redis.ResponseError("hash value is not an integer")
        current += int(amount)
        table[key] = str(current)
        return current

    def hgetall(self, name):
        return dict(self.hashes.get(name, {}))

    def ttl(self, name):
        if name not in self.hashes:
            return -2
        return self.expiry.get(name, -1)

    def expire(self, name, seconds):
        if name not in self.hashes:
            return False
        if seconds <= 0:
            self.hashes.pop(name, None)
            self.expiry.pop(name, None)
        else:
            self.expiry[name] = seconds
        return True

    def time(self):
        return (CLOCK, 0)


@pytest.fixture
def databases():
    return {}


@pytest.fixture
def store(databases):
    return ValueStore(lambda db: databases.setdefault(db, FakeRedis()))


def test_inc_value_accumulates(store, databases):
    first = store.inc_value(KEYS, ["player", "coins", "5"])
    assert first == 5
    second = store.inc_value(KEYS, ["player", "coins", "7"])
    assert second == first + 7
    assert databases[2].hget(MAIN_KEY, "coins") == str(second)


def test_inc_value_stamps_update_time(store, databases):
    result = store.inc_value(KEYS, ["player", "coins", "5"])
    assert result == 5
    assert databases[2].hget(MAIN_KEY, "lastUpdateTime") == str(CLOCK)


def test_inc_value_selects_database(store, databases):
    result = store.inc_value(["7", "minigame1", "game"], ["player", "coins", "1"])
    assert result == 1
    assert list(databases) == [7]


@pytest.mark.parametrize(
    "keys, args, name",
    [
        (["", "minigame1", "game"], ["player", "coins", "1"], "DBKey"),
        (["2", "", "game"], ["player", "coins", "1"], "ProjectKey"),
        (["2", "minigame1"], ["player", "coins", "1"], "TagKey"),
        (KEYS, ["", "coins", "1"], "k1"),
        (KEYS, ["player"], "k2"),
        (KEYS, ["player", "coins", "abc"], "v1"),
    ],
)
def test_inc_value_rejects_arguments(store, keys, args, name):
    with pytest.raises(ScriptError) as info:
        store.inc_value(keys, args)
    assert info.value.message == f"invalid argument '{name}'"
    assert info.value.sender == "IncValue.lua"


def test_inc_value_rejects_fraction(store):
    with pytest.raises(ScriptError):
        store.inc_value(KEYS, ["player", "coins", "1.5"])


def test_inc_value_on_text_field_fails(store, databases):
    store.update_value(KEYS, ["player", "coins", "3"])
    databases[2].hset(MAIN_KEY, "coins", "many")
    with pytest.raises(ScriptError):
        store.inc_value(KEYS, ["player", "coins", "1"])


def test_inc_value_before_reports_both_totals(store):
    before, after = store.inc_value_before(KEYS, ["player", "coins", "4"])
    assert before == 0
    assert after == 4
    again_before, again_after = store.inc_value_before(KEYS, ["player", "coins", "6"])
    assert again_before == after
    assert again_after == after + 6


def test_inc_value_before_rejects_missing_amount(store):
    with pytest.raises(ScriptError) as info:
        store.inc_value_before(KEYS, ["player", "coins", ""])
    assert info.value.sender == "IncValueBefore.lua"


def test_inc_value_batch_echoes_pairs(store, databases):
    keys = KEYS + ["player"]
    result = store.inc_value_batch(keys, ["a", "3", "b", "4"])
    assert [(r.key, r.value) for r in result] == [("a", "3"), ("b", "4")]
    store.inc_value_batch(keys, ["a", "3", "b", "4"])
    client = databases[2]
    assert int(client.hget(MAIN_KEY, "a")) == 3 + 3
    assert int(client.hget(MAIN_KEY, "b")) == 4 + 4
    assert client.hget(MAIN_KEY, "lastUpdateTime") == str(CLOCK)


def test_inc_value_batch_accepts_mapping(store, databases):
    result = store.inc_value_batch(KEYS + ["player"], {"gold": 2})
    assert [(r.key, r.value) for r in result] == [("gold", "2")]
    assert databases[2].hget(MAIN_KEY, "gold") == "2"


def test_inc_value_batch_accepts_several_arguments(store, databases):
    result = store.inc_value_batch(KEYS + ["player"], "gold", 9)
    assert [(r.key, r.value) for r in result] == [("gold", "9")]


def test_inc_value_batch_rejects_odd_count(store):
    with pytest.raises(ScriptError):
        store.inc_value_batch(KEYS + ["player"], ["a", "1", "b"])


def test_inc_value_batch_needs_arguments(store):
    with pytest.raises(ValueError):
        store.inc_value_batch(KEYS + ["player"])


def test_inc_value_batch_needs_main_key(store):
    with pytest.raises(ScriptError) as info:
        store.inc_value_batch(KEYS, ["a", "1"])
    assert info.value.message == "invalid argument 'k1'"


def test_fixed_ttl_sets_lifetime_once(store, databases):
    keys = KEYS + ["player", "60", "0"]
    result = store.inc_value_batch_fixed_ttl(keys, ["a", "2"])
    assert {r.key: r.value for r in result} == {"a": "2", "lastUpdateTime": str(CLOCK)}
    assert databases[2].ttl(MAIN_KEY) == 60
    store.inc_value_batch_fixed_ttl(KEYS + ["player", "90", "0"], ["a", "2"])
    assert databases[2].ttl(MAIN_KEY) == 60


def test_fixed_ttl_overwrite_replaces_lifetime(store, databases):
    store.inc_value_batch_fixed_ttl(KEYS + ["player", "60", "0"], ["a", "2"])
    result = store.inc_value_batch_fixed_ttl(KEYS + ["player", "90", "1"], ["a", "2"])
    assert {r.key: r.value for r in result} == {"a": "4", "lastUpdateTime": str(CLOCK)}
    assert databases[2].ttl(MAIN_KEY) == 90


def test_fixed_ttl_without_lifetime_leaves_hash(store, databases):
    result = store.inc_value_batch_fixed_ttl(KEYS + ["player"], ["a", "2"])
    assert {r.key: r.value for r in result} == {"a": "2", "lastUpdateTime": str(CLOCK)}
    assert databases[2].ttl(MAIN_KEY) == -1


def test_fixed_ttl_overwrite_needs_lifetime(store):
    with pytest.raises(ScriptError):
        store.inc_value_batch_fixed_ttl(KEYS + ["player", "", "1"], ["a", "2"])


def test_take_value_splits_pool(store, databases):
    store.update_value(KEYS, ["player", "pool", "200"])
    taken = store.take_value(KEYS, ["player", "pool", "50"])
    remaining = databases[2].hget(MAIN_KEY, "pool")
    assert taken + int(remaining) == 200
    assert taken > 0


def test_take_value_from_empty_pool(store, databases):
    assert store.take_value(KEYS, ["player", "pool", "50"]) == 0
    assert databases[2].hget(MAIN_KEY, "pool") == "0"


def test_take_value_fractional_share_fails(store):
    store.update_value(KEYS, ["player", "pool", "5"])
    with pytest.raises(ScriptError):
        store.take_value(KEYS, ["player", "pool", "50"])


def test_take_value_text_pool_fails(store, databases):
    databases.setdefault(2, FakeRedis()).hset(MAIN_KEY, "pool", "lots")
    with pytest.raises(ScriptError):
        store.take_value(KEYS, ["player", "pool", "50"])


def test_take_value_needs_rate(store):
    with pytest.raises(ScriptError) as info:
        store.take_value(KEYS, ["player", "pool"])
    assert info.value.message == "invalid argument 'v1'"


def test_update_value_round_trip(store, databases):
    assert store.update_value(KEYS, ["player", "score", "42"]) == 42
    assert databases[2].hget(MAIN_KEY, "score") == "42"


def test_update_value_rejects_text(store):
    with pytest.raises(ScriptError) as info:
        store.update_value(KEYS, ["player", "score", "high"])
    assert info.value.sender == "UpdateValue.lua"


def test_connect_must_be_callable():
    with pytest.raises(TypeError):
        ValueStore("not callable")