import pytest
import redis

from kvops.collections import CollectionStore
from kvops.core import RedisResult, ScriptError

KEYS = ["2", "minigame1", "game"]


class FakeRedis:
    def __init__(self):
        self.lists = {}
        self.sets = {}
        self.zsets = {}

    def _push(self, name, values, left):
        if not values:
            raise redis.exceptions.ResponseError("wrong number of arguments")
        items = self.lists.setdefault(name, [])
        for value in values:
            if left:
                items.insert(0, value)
            else:
                items.append(value)
        return len(items)

    def lpush(self, name, *values):
        return self._push(name, values, True)

    def rpush(self, name, *values):
        return self._push(name, values, False)

    def exists(self, *names):
        return sum(
            1 for n in names if n in self.lists or n in self.sets or n in self.zsets
        )

    def llen(self, name):
        return len(self.lists.get(name, []))

    def lset(self, name, index, value):
        items = self.lists.get(name)
        if items is None:
            raise redis.exceptions.ResponseError("no such key")
        if not -len(items) <= index < len(items):
            raise redis.exceptions.ResponseError("index out of range")
        items[index] = value
        return True

    def sadd(self, name, *values):
        members = self.sets.setdefault(name, set())
        before = len(members)
        members.update(values)
        return len(members) - before

    def srem(self, name, *values):
        members = self.sets.get(name, set())
        removed = len(members & set(values))
        members.difference_update(values)
        return removed

    def sismember(self, name, value):
        return value in self.sets.get(name, set())

    def smembers(self, name):
        return set(self.sets.get(name, set()))

    def zadd(self, name, mapping):
        zset = self.zsets.setdefault(name, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update({member: float(score) for member, score in mapping.items()})
        return added

    def zscore(self, name, member):
        return self.zsets.get(name, {}).get(member)

    def zrange(self, name, start, end, withscores=False):
        items = sorted(self.zsets.get(name, {}).items(), key=lambda kv: (kv[1], kv[0]))
        if withscores:
            return items
        return [member for member, _ in items]


@pytest.fixture
def databases():
    return {}


@pytest.fixture
def store(databases):
    return CollectionStore(lambda db: databases.setdefault(db, FakeRedis()))


def test_new_list_right_appends(store, databases):
    assert store.new_list(KEYS, ["k1", "R", "a"]) == "a"
    assert store.new_list(KEYS, ["k1", "R", "b"]) == "b"
    assert databases[2].lists["minigame1:game:k1"] == ["a", "b"]


def test_new_list_left_prepends(store, databases):
    assert store.new_list(KEYS, ["k1", "L", "a"]) == "a"
    assert store.new_list(KEYS, ["k1", "L", "b"]) == "b"
    assert databases[2].lists["minigame1:game:k1"] == ["b", "a"]


def test_new_list_unknown_model(store):
    with pytest.raises(ScriptError):
        store.new_list(KEYS, ["k1", "X", "a"])


def test_new_list_missing_value(store):
    with pytest.raises(ScriptError) as info:
        store.new_list(KEYS, ["k1", "R"])
    assert info.value.message == "invalid argument 'v1'"


def test_new_list_batch_right(store, databases):
    assert store.new_list_batch(KEYS + ["k1", "R"], ["a", "b", "c"]) == 3
    assert databases[2].lists["minigame1:game:k1"] == ["a", "b", "c"]


def test_new_list_batch_left_reverses(store, databases):
    assert store.new_list_batch(KEYS + ["k1", "L"], "a", "b", "c") == 3
    assert databases[2].lists["minigame1:game:k1"] == ["c", "b", "a"]


def test_new_list_batch_missing_model(store):
    with pytest.raises(ScriptError) as info:
        store.new_list_batch(KEYS + ["k1"], ["a"])
    assert info.value.message == "invalid argument 'model'"


def test_update_list_replaces_element(store, databases):
    store.new_list_batch(KEYS + ["k1", "R"], ["a", "b"])
    assert store.update_list(KEYS, ["k1", "1", "z"]) == "z"
    assert databases[2].lists["minigame1:game:k1"] == ["a", "z"]


def test_update_list_negative_index(store, databases):
    store.new_list_batch(KEYS + ["k1", "R"], ["a", "b"])
    assert store.update_list(KEYS, ["k1", "-1", "z"]) == "z"
    assert databases[2].lists["minigame1:game:k1"] == ["a", "z"]


def test_update_list_index_out_of_range(store):
    store.new_list_batch(KEYS + ["k1", "R"], ["a", "b"])
    with pytest.raises(ScriptError) as info:
        store.update_list(KEYS, ["k1", "2", "z"])
    assert info.value.message == "index out of range"


def test_update_list_missing_list(store):
    with pytest.raises(ScriptError) as info:
        store.update_list(KEYS, ["nothing", "0", "z"])
    assert info.value.message == "no such key"


def test_new_set_returns_member(store, databases):
    assert store.new_set(KEYS, ["k1", "alpha"]) == "alpha"
    assert store.new_set(KEYS, ["k1", "alpha"]) == "alpha"
    assert databases[2].sets["minigame1:game:k1"] == {"alpha"}


def test_update_set_replaces_member(store, databases):
    store.new_set(KEYS, ["k1", "alpha"])
    assert store.update_set(KEYS, ["k1", "alpha", "beta"]) == "beta"
    assert databases[2].sets["minigame1:game:k1"] == {"beta"}


def test_update_set_existing_target(store, databases):
    store.new_set(KEYS, ["k1", "alpha"])
    store.new_set(KEYS, ["k1", "beta"])
    assert store.update_set(KEYS, ["k1", "alpha", "beta"]) == "-1"
    assert databases[2].sets["minigame1:game:k1"] == {"beta"}


def test_sadd_counts_new_members(store):
    assert store.sadd(["6", "myset", "one"], []) == "1"
    assert store.sadd(["6", "myset", "one"], []) == "0"


def test_smembers_lists_members(store):
    store.sadd(["6", "myset", "b"], [])
    store.sadd(["6", "myset", "a"], [])
    result = store.smembers(["6", "myset"], [])
    assert [item.value for item in result] == ["a", "b"]


def test_new_zset_returns_score_and_member(store, databases):
    result = store.new_zset(KEYS, ["k1", "5", "alice"])
    assert result == RedisResult(value="5", value2="alice")
    assert databases[2].zsets["minigame1:game:k1"] == {"alice": 5.0}


def test_new_zset_fractional_score(store):
    result = store.new_zset(KEYS, ["k1", "1.5", "bob"])
    assert (result.value, result.value2) == ("1.5", "bob")


def test_update_zset_changes_score(store):
    store.new_zset(KEYS, ["k1", "5", "alice"])
    result = store.update_zset(KEYS, ["k1", "7", "alice"])
    assert (result.value, result.value2) == ("7", "alice")


def test_new_zset_rejects_non_numeric_score(store):
    with pytest.raises(ScriptError) as info:
        store.new_zset(KEYS, ["k1", "many", "alice"])
    assert info.value.message == "invalid argument 'v1'"


def test_zadd_and_zrange_cases(store, databases):
    assert store.zadd(["6", "myzset"], ["acac", "1"]) == ("1", 0)
    assert store.zadd(["6", "myzset"], ["acdc", "1"]) == ("1", 0)
    assert 6 in databases
    result = store.zrange(["6", "myzset"], [])
    assert [(item.value, item.value_int64) for item in result] == [
        ("acac", 1),
        ("acdc", 1),
    ]


def test_zadd_existing_member(store):
    store.zadd(["6", "myzset"], ["acac", "1"])
    assert store.zadd(["6", "myzset"], ["acac", "3"]) == ("0", 0)


def test_zadd_missing_score(store):
    with pytest.raises(ScriptError):
        store.zadd(["6", "myzset"], ["acac"])


def test_zrange_fractional_score_reads_zero(store):
    store.zadd(["6", "myzset"], ["half", "0.5"])
    store.zadd(["6", "myzset"], ["two", "2"])
    result = store.zrange(["6", "myzset"], [])
    assert [(item.value, item.value_int64) for item in result] == [
        ("half", 0),
        ("two", 2),
    ]