import asyncio
import pytest
from queryhub.models.records import QueryType
from queryhub.services.protection_service import ProtectionRegistry
from queryhub.utils.exceptions import DuplicateError, NotFoundError, ValidationError


class TestProtectionRegistry:
    """Deny list consulted before every lookup"""

    def setup_method(self):
        self.identity = "12345678901"

    def test_add_then_match_normalized_variants(self, make_settings):
        registry = ProtectionRegistry(make_settings())

        async def scenario():
            await registry.initialize()
            entry = await registry.add(QueryType.IDENTITY, "123.456.789-01", "test", "admin")
            checks = [
                await registry.is_protected(QueryType.IDENTITY, value)
                for value in ["12345678901", "123.456.789-01", " 123 456 789 01 "]
            ]
            other_type = await registry.is_protected(QueryType.PHONE_NUMBER, "12345678901")
            other_value = await registry.is_protected(QueryType.IDENTITY, "12345678902")
            return entry, checks, other_type, other_value

        entry, checks, other_type, other_value = asyncio.run(scenario())

        assert entry.id.startswith("protected-")
        assert entry.value == self.identity
        assert entry.original_value == "123.456.789-01"
        assert entry.added_by == "admin"
        assert checks == [True, True, True]
        assert other_type is False
        assert other_value is False

    def test_names_match_case_insensitively(self, make_settings):
        registry = ProtectionRegistry(make_settings())

        async def scenario():
            await registry.add(QueryType.FULL_NAME, "  Maria da Silva ", "vip")
            return (
                await registry.is_protected(QueryType.FULL_NAME, "MARIA DA SILVA"),
                await registry.is_protected(QueryType.FULL_NAME, "Maria Silva"),
            )

        assert asyncio.run(scenario()) == (True, False)

    def test_duplicate_add_is_rejected(self, make_settings):
        registry = ProtectionRegistry(make_settings())

        async def scenario():
            await registry.add(QueryType.IDENTITY, self.identity, "first")
            with pytest.raises(DuplicateError):
                await registry.add(QueryType.IDENTITY, "123.456.789-01", "second")
            return await registry.search()

        entries = asyncio.run(scenario())

        assert len(entries) == 1
        assert entries[0].reason == "first"

    def test_same_value_different_type_is_allowed(self, make_settings):
        registry = ProtectionRegistry(make_settings())

        async def scenario():
            await registry.add(QueryType.IDENTITY, "11999998888")
            await registry.add(QueryType.PHONE_NUMBER, "11999998888")
            return await registry.stats()

        stats = asyncio.run(scenario())

        assert stats["total"] == 2
        assert stats["identity"] == 1
        assert stats["phoneNumber"] == 1
        assert stats["fullName"] == 0
        assert stats["lastUpdated"] is not None

    def test_empty_value_is_rejected(self, make_settings):
        registry = ProtectionRegistry(make_settings())

        with pytest.raises(ValidationError):
            asyncio.run(registry.add(QueryType.IDENTITY, "...-", "no digits"))

    def test_update_reason_and_value(self, make_settings):
        registry = ProtectionRegistry(make_settings())

        async def scenario():
            entry = await registry.add(QueryType.IDENTITY, self.identity, "old")
            updated = await registry.update(entry.id, reason="new", value="987.654.321-00")
            return (
                updated,
                await registry.is_protected(QueryType.IDENTITY, self.identity),
                await registry.is_protected(QueryType.IDENTITY, "98765432100"),
            )

        updated, old_protected, new_protected = asyncio.run(scenario())

        assert updated.reason == "new"
        assert updated.value == "98765432100"
        assert updated.original_value == "987.654.321-00"
        assert updated.updated_at is not None
        assert old_protected is False
        assert new_protected is True

    def test_update_to_existing_value_is_rejected(self, make_settings):
        registry = ProtectionRegistry(make_settings())

        async def scenario():
            await registry.add(QueryType.IDENTITY, "11111111111")
            second = await registry.add(QueryType.IDENTITY, "22222222222")
            with pytest.raises(DuplicateError):
                await registry.update(second.id, value="111.111.111-11")

        asyncio.run(scenario())

    def test_update_and_delete_unknown_id(self, make_settings):
        registry = ProtectionRegistry(make_settings())

        with pytest.raises(NotFoundError):
            asyncio.run(registry.update("protected-missing", reason="x"))
        with pytest.raises(NotFoundError):
            asyncio.run(registry.delete("protected-missing"))

    def test_add_then_delete_restores_search(self, make_settings):
        registry = ProtectionRegistry(make_settings())

        async def scenario():
            await registry.add(QueryType.FULL_NAME, "Joao Souza", "press")
            before = await registry.search()
            entry = await registry.add(QueryType.IDENTITY, self.identity, "test")
            removed = await registry.delete(entry.id)
            return before, removed, await registry.search()

        before, removed, after = asyncio.run(scenario())

        assert removed.id not in [entry.id for entry in after]
        assert after == before

    def test_search_over_value_reason_and_type(self, make_settings):
        registry = ProtectionRegistry(make_settings())

        async def scenario():
            await registry.add(QueryType.IDENTITY, self.identity, "Court order")
            await registry.add(QueryType.FULL_NAME, "Joao Souza", "press")
            await registry.add(QueryType.PHONE_NUMBER, "11999998888", "")
            return (
                await registry.search("court"),
                await registry.search("joao"),
                await registry.search("phone"),
                await registry.search(""),
            )

        by_reason, by_value, by_type, everything = asyncio.run(scenario())

        assert [entry.type for entry in by_reason] == [QueryType.IDENTITY]
        assert [entry.value for entry in by_value] == ["joao souza"]
        assert [entry.type for entry in by_type] == [QueryType.PHONE_NUMBER]
        assert [entry.type for entry in everything] == [
            QueryType.IDENTITY, QueryType.FULL_NAME, QueryType.PHONE_NUMBER
        ]
