"""Tests for the in-memory room registry."""

from registry import RoomRegistry


class TestRoomRegistry:

    def test_get_or_create_is_lazy_and_idempotent(self, registry):
        assert registry.get("123") is None
        room = registry.get_or_create("123")
        assert registry.get_or_create("123") is room
        assert room.members == {}
        assert room.code is None
        assert room.language is None

    def test_members_snapshot_keeps_join_order(self, registry):
        registry.add_member("123", "A", "c1")
        registry.add_member("123", "B", "c2")
        snapshot = registry.members("123")
        assert snapshot == ["A", "B"]
        snapshot.append("C")
        assert registry.members("123") == ["A", "B"]

    def test_members_of_unknown_room_is_empty(self, registry):
        assert registry.members("nope") == []

    def test_remove_member_unknown_room_or_member_is_noop(self, registry):
        registry.remove_member("nope", "A")
        registry.add_member("123", "A", "c1")
        registry.remove_member("123", "ghost")
        assert registry.members("123") == ["A"]

    def test_last_member_leaving_reaps_room_without_document(self, registry):
        registry.add_member("123", "A", "c1")
        registry.remove_member("123", "A")
        assert registry.get("123") is None
        assert registry.rooms() == []

    def test_room_with_document_survives_last_member(self, registry):
        registry.add_member("123", "A", "c1")
        registry.set_document_code("123", "print(1)")
        registry.remove_member("123", "A")
        room = registry.get("123")
        assert room.code == "print(1)"
        assert not registry.is_active("123")
        assert not registry.reap("123")

    def test_language_alone_keeps_room(self, registry):
        registry.add_member("123", "A", "c1")
        registry.set_document_language("123", "java")
        registry.remove_member("123", "A")
        assert registry.get("123").language == "java"

    def test_remove_member_without_reap_keeps_room(self, registry):
        registry.add_member("123", "A", "c1")
        registry.set_document_code("123", "x")
        registry.remove_member("123", "A", reap=False)
        assert registry.get("123").code == "x"
        assert not registry.is_active("123")

    def test_reaping_disabled_keeps_empty_rooms(self):
        registry = RoomRegistry(reap_empty_rooms=False)
        registry.add_member("123", "A", "c1")
        registry.remove_member("123", "A")
        assert registry.get("123") is not None
        assert registry.members("123") == []
        assert not registry.is_active("123")

    def test_document_updates_are_last_writer_wins(self, registry):
        registry.set_document_code("123", "a")
        registry.set_document_code("123", "b")
        registry.set_document_language("123", "java")
        room = registry.get("123")
        assert room.code == "b"
        assert room.language == "java"

    def test_language_defaults_until_set(self, registry):
        room = registry.get_or_create("123")
        assert room.effective_language == "cpp"
        assert not room.has_document
        registry.set_document_language("123", "python3")
        assert room.effective_language == "python3"
        assert room.has_document

    def test_holder_of_is_case_insensitive(self, registry):
        registry.add_member("123", "Alice", "c1")
        room = registry.get("123")
        assert room.holder_of("alice") == "c1"
        assert room.holder_of("bob") is None

    def test_is_active(self, registry):
        assert not registry.is_active("123")
        registry.add_member("123", "A", "c1")
        assert registry.is_active("123")
        assert not registry.is_active(None)
