"""Tests for ``ormkit.core.query.sql`` - parameterized PostgreSQL builder."""

from __future__ import annotations

import pytest

from ormkit.core.errors import InvalidRequestError
from ormkit.core.properties import Property, PropertyType
from ormkit.core.query.comparators import between, gt, like, lte, ne, not_between, not_in, not_like
from ormkit.core.query.request import ExistsSpec, FindOptions, MergeSpec
from ormkit.core.query.sql import SqlQueryBuilder, column_type, escape_id


@pytest.fixture
def builder() -> SqlQueryBuilder:
    return SqlQueryBuilder()


class TestEscapeId:
    def test_quotes(self):
        assert escape_id("users") == '"users"'

    def test_doubles_embedded_quotes(self):
        assert escape_id('we"ird') == '"we""ird"'

    def test_dotted(self):
        assert escape_id("public.users") == '"public"."users"'

    def test_star(self):
        assert escape_id("*") == "*"


class TestSelect:
    def test_plain(self, builder):
        q = builder.select("users", ["id", "name"])
        assert q.text == 'SELECT "id", "name" FROM "users"'
        assert q.params == ()

    def test_no_fields_selects_star(self, builder):
        assert builder.select("users", []).text == 'SELECT * FROM "users"'

    def test_equality_is_bound(self, builder):
        q = builder.select("users", ["name"], {"id": 1})
        assert q.text == 'SELECT "name" FROM "users" WHERE "id" = $1'
        assert q.params == (1,)

    def test_values_never_reach_text(self, builder):
        hostile = "1; DROP TABLE users; --"
        q = builder.select("users", ["name"], {"name": hostile})
        assert hostile not in q.text
        assert q.params == (hostile,)

    def test_null_and_membership(self, builder):
        q = builder.select("users", ["id"], {"deleted_at": None, "role": ["a", "b"]})
        assert q.text == 'SELECT "id" FROM "users" WHERE "deleted_at" IS NULL AND "role" IN ($1, $2)'
        assert q.params == ("a", "b")

    def test_empty_membership_matches_nothing(self, builder):
        assert builder.select("users", ["id"], {"id": []}).text.endswith("WHERE FALSE")

    def test_comparators(self, builder):
        q = builder.select(
            "users",
            ["id"],
            {"age": gt(18), "score": between(1, 5), "name": like("A%"), "rank": lte(3)},
        )
        assert q.text == (
            'SELECT "id" FROM "users" WHERE "age" > $1 AND "score" BETWEEN $2 AND $3 '
            'AND "name" LIKE $4 AND "rank" <= $5'
        )
        assert q.params == (18, 1, 5, "A%", 3)

    def test_negated_comparators(self, builder):
        q = builder.select(
            "users",
            ["id"],
            {"a": ne(None), "b": ne(2), "c": not_between(1, 2), "d": not_like("x%"), "e": not_in([7])},
        )
        assert q.text == (
            'SELECT "id" FROM "users" WHERE "a" IS NOT NULL AND "b" <> $1 '
            'AND "c" NOT BETWEEN $2 AND $3 AND "d" NOT LIKE $4 AND "e" NOT IN ($5)'
        )
        assert q.params == (2, 1, 2, "x%", 7)

    def test_empty_not_in_matches_everything(self, builder):
        assert builder.select("users", ["id"], {"id": not_in([])}).text.endswith("WHERE TRUE")

    def test_order_limit_offset(self, builder):
        q = builder.select(
            "users",
            ["id", "name"],
            {"age": gt(18)},
            FindOptions(order=[("name", "A"), ("age", "Z")], limit=10, offset=20),
        )
        assert q.text == (
            'SELECT "id", "name" FROM "users" WHERE "age" > $1 '
            'ORDER BY "name" ASC, "age" DESC LIMIT $2 OFFSET $3'
        )
        assert q.params == (18, 10, 20)

    def test_zero_offset_is_omitted(self, builder):
        q = builder.select("users", ["id"], None, FindOptions(limit=5, offset=0))
        assert q.text == 'SELECT "id" FROM "users" LIMIT $1'
        assert q.params == (5,)

    def test_options_as_mapping(self, builder):
        q = builder.select("users", ["name"], {"id": 1}, {"limit": 5, "order": ("name", "Z")})
        assert q.text == 'SELECT "name" FROM "users" WHERE "id" = $1 ORDER BY "name" DESC LIMIT $2'
        assert q.params == (1, 5)


class TestJoins:
    def test_merge(self, builder):
        merge = MergeSpec("user_roles", "user_id", "id", select=["role"], where={"role": "admin"})
        q = builder.select("users", ["id", "name"], {"id": 5}, FindOptions(merge=merge))
        assert q.text == (
            'SELECT t1."id", t1."name", t2."role" FROM "users" t1 '
            'JOIN "user_roles" t2 ON t2."user_id" = t1."id" '
            'WHERE t2."role" = $1 AND t1."id" = $2'
        )
        assert q.params == ("admin", 5)

    def test_merge_without_fields(self, builder):
        merge = MergeSpec("user_roles", "user_id", "id")
        q = builder.select("users", [], None, FindOptions(merge=merge))
        assert q.text == 'SELECT t1.* FROM "users" t1 JOIN "user_roles" t2 ON t2."user_id" = t1."id"'

    def test_exists(self, builder):
        exists = {"posts": ExistsSpec("posts", "author_id", "id", {"published": True})}
        q = builder.select("users", ["name"], None, FindOptions(exists=exists))
        assert q.text == (
            'SELECT t1."name" FROM "users" t1 WHERE EXISTS '
            '(SELECT 1 FROM "posts" e1 WHERE e1."author_id" = t1."id" AND e1."published" = $1)'
        )
        assert q.params == (True,)

    def test_several_exists_get_own_alias(self, builder):
        exists = {
            "posts": ExistsSpec("posts", "author_id", "id"),
            "likes": ExistsSpec("likes", "user_id", "id"),
        }
        q = builder.select("users", ["id"], {"active": True}, FindOptions(exists=exists, order="-id"))
        assert 'FROM "posts" e1' in q.text
        assert 'FROM "likes" e2' in q.text
        assert q.text.endswith('ORDER BY t1."id" DESC')
        assert q.params == (True,)


    def test_options_mapping_with_nested_specs(self, builder):
        options = {
            "merge": {"from_table": "user_roles", "from_field": "user_id", "to_field": "id", "select": ["role"]},
            "exists": {"posts": {"table": "posts", "link_fields": "author_id", "parent_fields": "id"}},
        }
        q = builder.select("users", ["name"], None, options)
        assert q.text == (
            'SELECT t1."name", t2."role" FROM "users" t1 '
            'JOIN "user_roles" t2 ON t2."user_id" = t1."id" WHERE EXISTS '
            '(SELECT 1 FROM "posts" e1 WHERE e1."author_id" = t1."id")'
        )
        assert q.params == ()


class TestCount:
    def test_count_ignores_pagination(self, builder):
        q = builder.count("users", {"active": True}, FindOptions(limit=5, offset=10))
        assert q.text == 'SELECT COUNT(*) AS "c" FROM "users" WHERE "active" = $1'
        assert q.params == (True,)

    def test_count_column(self, builder):
        q = builder.count("users", None, FindOptions(count_column="email"))
        assert q.text == 'SELECT COUNT("email") AS "c" FROM "users"'

    def test_count_with_exists(self, builder):
        exists = {"posts": ExistsSpec("posts", "author_id", "id")}
        q = builder.count("users", None, FindOptions(exists=exists))
        assert q.text == (
            'SELECT COUNT(*) AS "c" FROM "users" t1 WHERE EXISTS '
            '(SELECT 1 FROM "posts" e1 WHERE e1."author_id" = t1."id")'
        )


class TestWrites:
    def test_insert(self, builder):
        q = builder.insert("users", {"name": "a", "age": 3})
        assert q.text == 'INSERT INTO "users" ("name", "age") VALUES ($1, $2) RETURNING *'
        assert q.params == ("a", 3)

    def test_insert_defaults(self, builder):
        assert builder.insert("users", {}).text == 'INSERT INTO "users" DEFAULT VALUES RETURNING *'

    def test_update(self, builder):
        q = builder.update("users", {"name": "b"}, {"id": 1})
        assert q.text == 'UPDATE "users" SET "name" = $1 WHERE "id" = $2'
        assert q.params == ("b", 1)

    def test_update_without_changes(self, builder):
        with pytest.raises(InvalidRequestError):
            builder.update("users", {}, {"id": 1})

    def test_delete(self, builder):
        q = builder.delete("users", {"id": [1, 2]})
        assert q.text == 'DELETE FROM "users" WHERE "id" IN ($1, $2)'
        assert builder.delete("users").text == 'DELETE FROM "users"'

    def test_truncate(self, builder):
        assert builder.truncate("users").text == 'TRUNCATE TABLE "users"'


class TestDDL:
    def test_create_table(self, builder):
        q = builder.create_table(
            "users",
            {
                "name": Property(PropertyType.STRING, required=True, size=64),
                "age": Property.parse(int),
                "meta": Property(PropertyType.OBJECT),
            },
        )
        assert q.text == (
            'CREATE TABLE IF NOT EXISTS "users" ("id" SERIAL PRIMARY KEY, '
            '"name" VARCHAR(64) NOT NULL, "age" INTEGER, "meta" JSONB)'
        )

    def test_id_property_not_duplicated(self, builder):
        q = builder.create_table("t", {"uid": Property.parse(int)}, id_property="uid")
        assert q.text == 'CREATE TABLE IF NOT EXISTS "t" ("uid" SERIAL PRIMARY KEY)'

    def test_drop_table(self, builder):
        assert builder.drop_table("users").text == 'DROP TABLE IF EXISTS "users"'

    @pytest.mark.parametrize(
        ("prop", "expected"),
        [
            (Property(PropertyType.STRING), "TEXT"),
            (Property(PropertyType.NUMBER), "DOUBLE PRECISION"),
            (Property(PropertyType.BOOLEAN, unique=True), "BOOLEAN UNIQUE"),
            (Property(PropertyType.DATE), "TIMESTAMP WITH TIME ZONE"),
            (Property(PropertyType.BINARY), "BYTEA"),
        ],
    )
    def test_column_types(self, prop, expected):
        assert column_type(prop) == expected
