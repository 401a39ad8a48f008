from utils.cache import BIRTHDAY_STUDENTS, CLASSES, CacheService, get_cache, invalidate_student_data, students_by_class_key


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = CacheService(clock=clock)
    cache.set("classes", ["1"], ttl=120)
    clock.advance(120)
    assert cache.get("classes") == ["1"]
    clock.advance(1)
    assert cache.get("classes") is None
    assert len(cache) == 0


def test_default_ttl_applies():
    clock = FakeClock()
    cache = CacheService(clock=clock, default_ttl=300)
    cache.set("k", 1)
    clock.advance(301)
    assert not cache.has("k")


def test_get_or_load_only_loads_on_miss():
    calls = []
    cache = CacheService(clock=FakeClock())

    def loader():
        calls.append(1)
        return {"v": len(calls)}

    assert cache.get_or_load("k", loader) == {"v": 1}
    assert cache.get_or_load("k", loader) == {"v": 1}
    assert len(calls) == 1


def test_is_stale_and_cleanup():
    clock = FakeClock()
    cache = CacheService(clock=clock)
    cache.set("a", 1, ttl=10)
    cache.set("b", 2, ttl=100)
    assert not cache.is_stale("a", 5)
    clock.advance(50)
    assert cache.is_stale("a", 5)
    assert cache.is_stale("missing", 5)
    assert cache.cleanup() == 1
    assert cache.stats() == {"dataCache": 1, "totalSize": 1}


def test_invalidate_prefix():
    cache = CacheService(clock=FakeClock())
    cache.set("students_c1", [])
    cache.set("student_9", {})
    cache.set("classes", [])
    assert cache.invalidate_prefix("students_", "student_") == 2
    assert cache.has("classes")


def test_app_owns_its_cache(app):
    cache = get_cache()
    assert cache is app.extensions["data_cache"]
    cache.set(CLASSES, ["c1"])
    cache.set(BIRTHDAY_STUDENTS, [{"id": "s"}])
    cache.set(students_by_class_key("c1"), [])
    cache.set("classes_with_names", [])
    invalidate_student_data()
    assert not cache.has(CLASSES)
    assert not cache.has(BIRTHDAY_STUDENTS)
    assert not cache.has(students_by_class_key("c1"))
    assert cache.has("classes_with_names")
