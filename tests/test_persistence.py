"""
Test Persistence Layer Functionality

Memory backend behaviour, and save/fetch/destroy round trips through it,
including how has-many associations are stored and reloaded.
"""

import pytest

from relmodel import Collection, Entity, RelationalEntity
from relmodel.core.errors import EntityNotFoundError
from relmodel.persistence import (
    EntityPersistenceBackend, MemoryRepo, get_backend, get_memory_persistence, register_backend,
)
from relmodel.persistence import memory as memory_module


class Post(Entity):
    title: str = ""


class Posts(Collection):
    model = Post


class Blog(RelationalEntity):
    associations = {"posts": Posts}


class RecordingBackend(EntityPersistenceBackend):
    """Backend that keeps records in a plain dict"""

    def __init__(self):
        self.records = {}

    def save_record(self, namespace, entity_id, record, ttl=None):
        self.records[(namespace, entity_id)] = (record, ttl)
        return True

    def load_record(self, namespace, entity_id):
        stored = self.records.get((namespace, entity_id))
        return stored[0] if stored else None

    def delete_record(self, namespace, entity_id):
        return self.records.pop((namespace, entity_id), None) is not None

    def exists(self, namespace, entity_id):
        return (namespace, entity_id) in self.records

    def cleanup_expired(self):
        return 0


class TestMemoryRepo:

    def test_singleton(self):
        assert MemoryRepo() is get_memory_persistence()

    def test_save_load_exists_delete(self, memory_store):
        assert memory_store.save_record("Blog", 1, {"name": "x"})

        assert memory_store.exists("Blog", 1)
        assert memory_store.load_record("Blog", 1) == {"name": "x"}
        assert memory_store.load_record("Blog", 2) is None

        assert memory_store.delete_record("Blog", 1)
        assert not memory_store.delete_record("Blog", 1)
        assert not memory_store.exists("Blog", 1)

    def test_records_are_copied(self, memory_store):
        record = {"posts": [{"title": "a"}]}
        memory_store.save_record("Blog", 1, record)
        record["posts"].append({"title": "b"})

        loaded = memory_store.load_record("Blog", 1)
        loaded["posts"].clear()

        assert memory_store.load_record("Blog", 1) == {"posts": [{"title": "a"}]}

    def test_ttl_expiry(self, memory_store, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr(memory_module.time, "time", lambda: now[0])

        memory_store.save_record("Blog", 1, {}, ttl=10)
        memory_store.save_record("Blog", 2, {}, ttl=10)
        memory_store.save_record("Blog", 3, {})
        assert memory_store.exists("Blog", 1)

        now[0] += 11
        assert memory_store.load_record("Blog", 1) is None
        assert memory_store.cleanup_expired() == 1
        assert memory_store.exists("Blog", 3)


class TestBackendRegistry:

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            get_backend("redis")

    def test_registered_backend_is_used_by_default(self, testing_config):
        backend = RecordingBackend()
        register_backend("recording", lambda: backend)
        testing_config.persistence.default_backend = "recording"

        entity = Entity({"id": 1})
        entity.save()

        assert backend.exists("Entity", 1)

    def test_class_level_backend(self, memory_store):
        backend = RecordingBackend()

        class Note(Entity):
            persistence_backend = backend

        Note({"id": "n1", "text": "hi"}).save()

        assert backend.load_record("Note", "n1") == {"id": "n1", "text": "hi"}
        assert not memory_store.exists("Note", "n1")


class TestEntityPersistence:

    def test_save_assigns_identity(self, memory_store):
        entity = Entity({"name": "draft"})
        synced = []
        entity.on("sync", lambda model, record, options: synced.append(record))

        assert entity.save()

        assert not entity.is_new()
        assert memory_store.load_record("Entity", entity.identity) == {"name": "draft", "id": entity.identity}
        assert synced == [{"name": "draft", "id": entity.identity}]

    def test_save_with_attributes_and_default_ttl(self, testing_config):
        backend = RecordingBackend()
        testing_config.persistence.default_ttl = 60

        class Note(Entity):
            persistence_backend = backend

        note = Note({"id": 1})
        note.save({"text": "hello"})

        assert backend.records[("Note", 1)] == ({"id": 1, "text": "hello"}, 60)

    def test_fetch_applies_stored_record(self, memory_store):
        memory_store.save_record("Entity", 4, {"id": 4, "name": "stored"})
        entity = Entity({"id": 4})
        events = []
        entity.on("all", lambda name, *args: events.append(name))

        entity.fetch()

        assert entity.get("name") == "stored"
        assert events == ["change:name", "change", "sync"]

    def test_fetch_coerces_declared_fields(self, memory_store):
        class Score(Entity):
            points: int = 0

        memory_store.save_record("Score", 4, {"id": 4, "points": "12"})

        assert Score.load(4).get("points") == 12

    def test_fetch_errors(self):
        with pytest.raises(EntityNotFoundError):
            Entity().fetch()

        with pytest.raises(EntityNotFoundError):
            Entity({"id": "missing"}).fetch()

    def test_load(self, memory_store):
        memory_store.save_record("Entity", 4, {"id": 4, "name": "stored"})

        assert Entity.load(4).get("name") == "stored"

    def test_destroy(self, memory_store):
        entity = Entity({"id": 1})
        entity.save()
        destroyed = []
        entity.on("destroy", lambda model, options: destroyed.append(model))

        assert entity.exists()
        assert entity.destroy()

        assert destroyed == [entity]
        assert not entity.exists()
        assert not Entity().destroy()


class TestAssociationPersistence:

    def test_saved_record_contains_raw_posts(self, memory_store):
        blog = Blog({"name": "My Story", "posts": [{"title": "Hello world!"}]})
        blog.save()

        record = memory_store.load_record("Blog", blog.identity)
        assert record["posts"] == [{"title": "Hello world!"}]

    def test_children_are_not_saved_separately(self, memory_store):
        Blog({"posts": [{"title": "inline"}]}).save()

        assert [key[0] for key in memory_store._data] == ["Blog"]

    def test_load_materializes_posts(self, memory_store):
        memory_store.save_record("Blog", 5, {"id": 5, "posts": [{"title": "a"}, {"title": "b"}]})

        blog = Blog.load(5)

        assert isinstance(blog.get("posts"), Posts)
        assert blog.get("posts").pluck("title") == ["a", "b"]
        assert all(isinstance(post, Post) for post in blog.get("posts"))

    def test_unloaded_association_is_not_sent_back(self, memory_store):
        blog = Blog({"id": 5, "name": "partial"})

        blog.save()

        assert memory_store.load_record("Blog", 5) == {"id": 5, "name": "partial"}

    def test_partial_fetch_leaves_association_untouched(self, memory_store):
        blog = Blog({"id": 5, "posts": [{"title": "local"}]})
        posts = blog.get("posts")
        memory_store.save_record("Blog", 5, {"id": 5, "name": "from server"})

        blog.fetch()

        assert blog.get("name") == "from server"
        assert blog.get("posts") is posts

    def test_fetched_posts_propagate_changes(self, memory_store):
        memory_store.save_record("Blog", 5, {"id": 5, "posts": []})
        blog = Blog.load(5)
        changes = []
        blog.on("change", lambda *args: changes.append(args))

        blog.get("posts").add({"title": "new"})

        assert len(changes) == 1
