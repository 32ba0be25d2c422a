import base64
import json
from concurrent.futures import ThreadPoolExecutor

import boto3
import pytest
from botocore.exceptions import ClientError, ReadTimeoutError

from worthwatch.core import keys
from worthwatch.core.enums import ContentType, EntityKind, ShowStatus
from worthwatch.core.exceptions import (
    AlreadyExistsException, NotFoundException, PartialFailureException, StoreException,
    StoreUnavailableException, ValidationException
)
from worthwatch.models import Movie, User, Watchlist
from worthwatch.repositories import (
    BaseRepository, LikeRepository, MovieRepository, Saga, ShowRepository, UserRepository,
    WatchlistRepository
)
from worthwatch.services.watchlist_service import WatchlistService


@pytest.fixture
def users(table, clock):
    return UserRepository(table, clock=clock)


@pytest.fixture
def watchlists(table, clock):
    return WatchlistRepository(table, clock=clock)


@pytest.fixture
def likes(table, clock):
    return LikeRepository(table, clock=clock)


@pytest.fixture
def movies(table, clock):
    return MovieRepository(table, clock=clock)


@pytest.fixture
def shows(table, clock):
    return ShowRepository(table, clock=clock)


def raw_row(table, pk, sk):
    return table.get_item(Key={"PK": pk, "SK": sk}).get("Item")


# Users

def test_create_and_fetch_user(users):
    user = users.create_user(email="a@example.com", username="alice", user_id="u1")

    assert users.get_by_id("u1") == user
    assert users.get_by_email("a@example.com").user_id == "u1"
    assert users.get_by_email("nobody@example.com") is None
    assert user.created_at == user.updated_at


def test_create_user_twice_is_rejected(users):
    users.create_user(email="a@example.com", username="alice", user_id="u1")
    with pytest.raises(AlreadyExistsException):
        users.create_user(email="b@example.com", username="bob", user_id="u1")


def test_update_never_creates(users):
    with pytest.raises(NotFoundException):
        users.update_user("ghost", {"bio": "hi"})
    assert users.get_by_id("ghost") is None


def test_update_touches_only_given_fields(users, table):
    user = users.create_user(email="a@example.com", username="alice", user_id="u1", bio="old")

    updated = users.update_user("u1", {"bio": "new"})

    assert updated.bio == "new"
    assert updated.username == "alice"
    assert updated.created_at == user.created_at
    assert updated.updated_at > user.updated_at


def test_update_rejects_unknown_and_immutable_attributes(users):
    users.create_user(email="a@example.com", username="alice", user_id="u1")
    with pytest.raises(ValidationException):
        users.update_user("u1", {"password": "x"})
    with pytest.raises(ValidationException):
        users.update_user("u1", {"created_at": "2000-01-01T00:00:00.000Z"})


def test_delete_is_idempotent(users):
    users.create_user(email="a@example.com", username="alice", user_id="u1")
    assert users.delete_user("u1") is True
    assert users.delete_user("u1") is False


def test_put_returns_replaced_row(users, clock):
    now = clock()
    first = User(user_id="u1", email="a@example.com", username="alice", created_at=now, updated_at=now)
    assert users.put(first) is None
    replaced = users.put(first.model_copy(update={"username": "alicia"}))
    assert replaced.username == "alice"
    assert users.get_by_id("u1").username == "alicia"


# Watchlists

def test_watchlist_defaults(watchlists, table):
    watchlist = watchlists.create_watchlist(curator_id="u1", title="Action Movies")

    assert watchlist.item_count == 0
    assert watchlist.like_count == 0
    assert watchlist.is_public is True
    assert watchlist.tags == []
    assert watchlist.created_at == watchlist.updated_at

    row = raw_row(table, keys.encode(EntityKind.WATCHLIST, watchlist.watchlist_id), keys.METADATA_SK)
    assert row["entityType"] == "WATCHLIST"
    assert row["isPublicStr"] == "true"

    public = watchlist.to_public()
    for internal in ("PK", "SK", "entityType", "isPublicStr"):
        assert internal not in public
    assert public["itemCount"] == 0


def test_visibility_shadow_follows_updates(watchlists, table):
    watchlist = watchlists.create_watchlist(curator_id="u1", title="Hidden gems", watchlist_id="w1")

    updated = watchlists.update_watchlist("w1", {"is_public": False})

    assert updated.is_public is False
    assert raw_row(table, "WATCHLIST#w1", "METADATA")["isPublicStr"] == "false"
    assert watchlists.list_public().items == []
    assert watchlist.watchlist_id == "w1"


def test_list_by_curator_newest_first(watchlists):
    watchlists.create_watchlist(curator_id="u1", title="First", watchlist_id="w1")
    watchlists.create_watchlist(curator_id="u1", title="Second", watchlist_id="w2", is_public=False)
    watchlists.create_watchlist(curator_id="u2", title="Other", watchlist_id="w3")

    page = watchlists.list_by_curator("u1")
    assert [w.watchlist_id for w in page.items] == ["w2", "w1"]

    public_only = watchlists.list_by_curator("u1", public_only=True)
    assert [w.watchlist_id for w in public_only.items] == ["w1"]


def test_list_public_paginates_with_cursor(watchlists):
    for index in range(5):
        watchlists.create_watchlist(curator_id="u1", title=f"List {index}", watchlist_id=f"w{index}")

    first = watchlists.list_public(limit=2)
    assert [w.watchlist_id for w in first.items] == ["w4", "w3"]
    assert first.cursor

    second = watchlists.list_public(limit=2, cursor=first.cursor)
    assert [w.watchlist_id for w in second.items] == ["w2", "w1"]


def test_invalid_cursor_is_a_validation_error(watchlists):
    with pytest.raises(ValidationException):
        watchlists.list_public(cursor="not-a-cursor!")


@pytest.mark.parametrize("payload", [
    {"a": 1},
    {"PK": "WATCHLIST#w1", "SK": "METADATA"},
    {"PK": "WATCHLIST#w1", "SK": "METADATA", "isPublicStr": "true", "createdAt": 5},
    ["PK", "SK"],
])
def test_cursor_must_carry_the_index_keys(watchlists, payload):
    cursor = base64.urlsafe_b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
    with pytest.raises(ValidationException):
        watchlists.list_public(cursor=cursor)


def test_cursor_from_another_listing_is_rejected(watchlists):
    for index in range(3):
        watchlists.create_watchlist(curator_id="u1", title=f"List {index}", watchlist_id=f"w{index}")
    feed_cursor = watchlists.list_public(limit=1).cursor

    with pytest.raises(ValidationException):
        watchlists.list_by_curator("u1", cursor=feed_cursor)


def test_list_by_tag(watchlists):
    watchlists.create_watchlist(curator_id="u1", title="Noir", tags=["noir", "classic"], watchlist_id="w1")
    watchlists.create_watchlist(curator_id="u1", title="Secret noir", tags=["noir"], is_public=False,
                                watchlist_id="w2")

    assert [w.watchlist_id for w in watchlists.list_by_tag("noir")] == ["w1"]
    assert {w.watchlist_id for w in watchlists.list_by_tag("noir", public_only=False)} == {"w1", "w2"}


# Items

def test_item_count_tracks_adds_and_removes(watchlists):
    watchlists.create_watchlist(curator_id="u1", title="Action Movies", watchlist_id="w1")
    items = watchlists.items

    items.add_item("w1", ContentType.MOVIE, "m1", position=0)
    items.add_item("w1", ContentType.SHOW, "s1")
    assert watchlists.get_by_id("w1").item_count == 2

    assert items.remove_item("w1", ContentType.MOVIE, "m1") is True
    assert items.remove_item("w1", ContentType.MOVIE, "m1") is False
    assert items.remove_item("w1", ContentType.MOVIE, "never-added") is False

    assert watchlists.get_by_id("w1").item_count == 1
    assert [i.content_id for i in items.list_by_watchlist("w1")] == ["s1"]


def thread_local_table(table):
    """boto3 resources are not shared across threads"""
    return boto3.session.Session().resource("dynamodb", region_name="us-east-1").Table(table.name)


def test_concurrent_adds_are_all_counted(table, clock):
    WatchlistRepository(table, clock=clock).create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    workers = 8
    adds = 24

    def add(index):
        items = WatchlistRepository(thread_local_table(table)).items
        items.add_item("w1", ContentType.MOVIE, f"m{index}", position=index)

    def remove_missing(index):
        items = WatchlistRepository(thread_local_table(table)).items
        return items.remove_item("w1", ContentType.SHOW, f"missing{index}")

    with ThreadPoolExecutor(max_workers=workers) as pool:
        added = [pool.submit(add, index) for index in range(adds)]
        removed = [pool.submit(remove_missing, index) for index in range(adds)]
        for future in added:
            future.result()
        assert [future.result() for future in removed] == [False] * adds

    watchlists = WatchlistRepository(table, clock=clock)
    assert watchlists.get_by_id("w1").item_count == adds
    assert len(watchlists.items.list_by_watchlist("w1")) == adds


def test_concurrent_counter_updates_are_not_lost(table, clock):
    WatchlistRepository(table, clock=clock).create_watchlist(curator_id="u1", title="List", watchlist_id="w1")

    def bump(_):
        return WatchlistRepository(thread_local_table(table)).increment_like_count("w1", 1)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(bump, range(40)))

    assert sorted(results) == list(range(1, 41))
    assert WatchlistRepository(table, clock=clock).get_by_id("w1").like_count == 40


def test_removing_missing_items_never_goes_negative(watchlists):
    watchlists.create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    watchlists.items.add_item("w1", ContentType.MOVIE, "m1")
    for _ in range(3):
        watchlists.items.remove_item("w1", ContentType.MOVIE, "m1")
        watchlists.items.remove_item("w1", ContentType.MOVIE, "m2")
    assert watchlists.get_by_id("w1").item_count == 0


def test_add_item_requires_parent(watchlists):
    with pytest.raises(NotFoundException):
        watchlists.items.add_item("missing", ContentType.MOVIE, "m1")
    assert watchlists.items.list_by_watchlist("missing") == []


def test_add_same_content_twice_is_rejected(watchlists):
    watchlists.create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    watchlists.items.add_item("w1", ContentType.MOVIE, "m1")
    with pytest.raises(AlreadyExistsException):
        watchlists.items.add_item("w1", ContentType.MOVIE, "m1")
    assert watchlists.get_by_id("w1").item_count == 1


def test_default_position_appends(watchlists):
    watchlists.create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    first = watchlists.items.add_item("w1", ContentType.MOVIE, "m1")
    second = watchlists.items.add_item("w1", ContentType.MOVIE, "m2")
    assert (first.position, second.position) == (0, 1)


def test_items_are_listed_by_position_and_reordered(watchlists):
    watchlists.create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    items = watchlists.items
    items.add_item("w1", ContentType.MOVIE, "m1", position=2)
    items.add_item("w1", ContentType.MOVIE, "m2", position=0)
    items.add_item("w1", ContentType.SHOW, "s1", position=1)

    assert [i.content_id for i in items.list_by_watchlist("w1")] == ["m2", "s1", "m1"]

    reordered = items.reorder("w1", [(ContentType.MOVIE, "m1"), (ContentType.MOVIE, "m2"), (ContentType.SHOW, "s1")])
    assert [(i.content_id, i.position) for i in reordered] == [("m1", 0), ("m2", 1), ("s1", 2)]


def test_reorder_must_cover_every_item(watchlists):
    watchlists.create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    watchlists.items.add_item("w1", ContentType.MOVIE, "m1")
    watchlists.items.add_item("w1", ContentType.MOVIE, "m2")
    with pytest.raises(ValidationException):
        watchlists.items.reorder("w1", [(ContentType.MOVIE, "m1")])
    with pytest.raises(ValidationException):
        watchlists.items.reorder("w1", [(ContentType.MOVIE, "m1"), (ContentType.MOVIE, "m1")])


def test_update_item_note_allows_clearing(watchlists):
    watchlists.create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    watchlists.items.add_item("w1", ContentType.MOVIE, "m1", curator_note="watch first")

    cleared = watchlists.items.update_item_note("w1", ContentType.MOVIE, "m1", None)

    assert cleared.curator_note is None
    with pytest.raises(NotFoundException):
        watchlists.items.update_item_note("w1", ContentType.MOVIE, "nope", "x")


def test_cascade_delete_removes_items_and_metadata(watchlists, table):
    watchlists.create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    for index in range(3):
        watchlists.items.add_item("w1", ContentType.MOVIE, f"m{index}")

    assert watchlists.delete_watchlist("w1") is True

    assert watchlists.get_by_id("w1") is None
    assert watchlists.items.list_by_watchlist("w1") == []
    assert raw_row(table, "WATCHLIST#w1", "ITEM#MOVIE#m0") is None
    assert watchlists.delete_watchlist("w1") is False


def test_cascade_delete_removes_likes(watchlists, likes):
    watchlists.create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    watchlists.create_watchlist(curator_id="u1", title="Other", watchlist_id="w12")
    for user_id in ("u2", "u3"):
        likes.like(user_id, "w1")
    likes.like("u2", "w12")

    saga = watchlists.build_delete_saga("w1")
    assert [step.description for step in saga.remaining][-1] == "delete metadata"
    assert {step.description for step in saga.remaining[:-1]} == {"delete like by u2", "delete like by u3"}

    watchlists.delete_watchlist("w1")

    assert likes.has_liked("u2", "w1") is False
    assert likes.list_by_watchlist("w1") == []
    assert [like.watchlist_id for like in likes.list_by_user("u2")] == ["w12"]


def test_delete_saga_lists_items_before_metadata(watchlists):
    watchlists.create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    watchlists.items.add_item("w1", ContentType.SHOW, "s1")

    saga = watchlists.build_delete_saga("w1")

    assert [step.description for step in saga.remaining] == ["delete item SHOW#s1", "delete metadata"]


# Saga

def test_saga_stops_and_resumes():
    calls = []
    failures = {"count": 1}

    def flaky():
        if failures["count"]:
            failures["count"] -= 1
            raise StoreUnavailableException()
        calls.append("second")

    saga = Saga("demo")
    saga.add_step("first", lambda: calls.append("first"))
    saga.add_step("second", flaky)
    saga.add_step("third", lambda: calls.append("third"))

    with pytest.raises(PartialFailureException) as exc_info:
        saga.run()
    assert exc_info.value.completed == ["first"]
    assert exc_info.value.remaining == ["second", "third"]
    assert exc_info.value.to_dict()["details"]["remainingSteps"] == ["second", "third"]

    assert saga.resume() == ["first", "second", "third"]
    assert calls == ["first", "second", "third"]
    assert saga.done


# Likes

def test_like_is_idempotent(likes):
    assert likes.like("u1", "w1") is True
    assert likes.like("u1", "w1") is False
    assert likes.has_liked("u1", "w1") is True

    assert likes.unlike("u1", "w1") is True
    assert likes.unlike("u1", "w1") is False
    assert likes.has_liked("u1", "w1") is False


def test_like_listings(likes):
    likes.like("u1", "w1")
    likes.like("u1", "w12")
    likes.like("u2", "w1")
    likes.like("u10", "w2")

    assert {like.watchlist_id for like in likes.list_by_user("u1")} == {"w1", "w12"}
    assert {like.user_id for like in likes.list_by_watchlist("w1")} == {"u1", "u2"}
    assert likes.list_by_user("u3") == []


def test_like_count_counter(watchlists):
    watchlists.create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    assert watchlists.increment_like_count("w1") == 1
    assert watchlists.increment_like_count("w1", -1) == 0
    with pytest.raises(NotFoundException):
        watchlists.increment_like_count("missing")


def test_like_on_watchlist_deleted_midway_is_undone(table, clock):
    service = WatchlistService(table, clock=clock)
    service.watchlist_repository.create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    increment = service.watchlist_repository.increment_like_count

    def delete_then_increment(watchlist_id, delta=1):
        service.watchlist_repository.delete(f"WATCHLIST#{watchlist_id}", "METADATA")
        return increment(watchlist_id, delta)

    service.watchlist_repository.increment_like_count = delete_then_increment

    with pytest.raises(NotFoundException):
        service.like("w1", "u2")
    assert service.like_repository.has_liked("u2", "w1") is False


def test_unlike_after_watchlist_is_gone(table, clock):
    service = WatchlistService(table, clock=clock)
    service.like_repository.like("u2", "w1")

    with pytest.raises(NotFoundException):
        service.unlike("w1", "u2")
    assert service.like_repository.has_liked("u2", "w1") is False


# Catalog

def test_movie_lookups(movies):
    movies.create_movie({"title": "Heat", "genres": ["Crime", "Thriller"], "tmdb_id": "949", "rating": 8.3},
                        movie_id="m1")
    movies.create_movie({"title": "The Heat", "genres": ["Comedy"]}, movie_id="m2")
    movies.create_movie({"title": "Alien", "genres": ["Horror"]}, movie_id="m3")

    assert [m.movie_id for m in movies.list_all().items] == ["m3", "m2", "m1"]
    assert {m.movie_id for m in movies.search_by_title("heat")} == {"m1", "m2"}
    assert [m.movie_id for m in movies.list_by_genre("crime")] == ["m1"]
    assert movies.get_by_tmdb_id("949").movie_id == "m1"
    assert movies.get_by_tmdb_id("0") is None


def test_float_attributes_survive_the_round_trip(movies):
    movies.create_movie({"title": "Heat", "rating": 8.3, "runtime": 170}, movie_id="m1")
    movie = movies.get_by_id("m1")
    assert movie.rating == 8.3
    assert movie.runtime == 170
    assert isinstance(movie, Movie)


def test_movie_patch_leaves_absent_fields(movies):
    movies.create_movie({"title": "Heat", "synopsis": "LA crime", "genres": ["Crime"]}, movie_id="m1")
    updated = movies.update_movie("m1", {"title": "Heat (1995)"})
    assert updated.synopsis == "LA crime"
    assert updated.genres == ["Crime"]


def test_show_end_year_null_is_explicit(shows, table):
    shows.create_show({"title": "Severance", "start_year": 2022}, show_id="s1")
    assert "endYear" in raw_row(table, "SHOW#s1", "METADATA")

    ended = shows.update_show("s1", {"end_year": 2025, "status": ShowStatus.ENDED})
    assert ended.end_year == 2025
    assert ended.status == "ended"

    reopened = shows.update_show("s1", {"end_year": None})
    assert reopened.end_year is None
    assert reopened.start_year == 2022
    assert raw_row(table, "SHOW#s1", "METADATA")["endYear"] is None


def test_list_shows_by_status(shows):
    shows.create_show({"title": "Running"}, show_id="s1")
    shows.create_show({"title": "Done", "status": ShowStatus.ENDED, "end_year": 2020}, show_id="s2")
    assert [s.show_id for s in shows.list_by_status(ShowStatus.ENDED)] == ["s2"]


def test_shared_partition_decodes_by_entity_type(watchlists):
    watchlists.create_watchlist(curator_id="u1", title="List", watchlist_id="w1")
    watchlists.items.add_item("w1", ContentType.MOVIE, "m1")

    from boto3.dynamodb.conditions import Key
    rows = list(watchlists.query(Key("PK").eq("WATCHLIST#w1")))

    assert {type(row).__name__ for row in rows} == {"Watchlist", "WatchlistItem"}
    assert any(isinstance(row, Watchlist) for row in rows)


def test_batch_get_hydrates_in_key_order(movies):
    movies.create_movie({"title": "Heat", "rating": 8.3}, movie_id="m1")
    movies.create_movie({"title": "Ronin"}, movie_id="m2")

    found = movies.batch_get([
        {"PK": "MOVIE#m2", "SK": "METADATA"},
        {"PK": "MOVIE#missing", "SK": "METADATA"},
        {"PK": "MOVIE#m1", "SK": "METADATA"},
    ])

    assert [movie.movie_id for movie in found] == ["m2", "m1"]
    assert found[1].rating == 8.3


# Store failures

class FailingTable:
    name = "broken"

    def __init__(self, error):
        self.error = error

    def get_item(self, **kwargs):
        raise self.error


def client_error(code):
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, "GetItem")


@pytest.mark.parametrize("error", [
    client_error("ProvisionedThroughputExceededException"),
    client_error("ThrottlingException"),
    client_error("InternalServerError"),
    ReadTimeoutError(endpoint_url="http://localhost"),
])
def test_transient_failures_are_retryable(error):
    repository = BaseRepository(User, FailingTable(error))
    with pytest.raises(StoreUnavailableException) as exc_info:
        repository.get("USER#u1", "PROFILE")
    assert exc_info.value.status_code == 503


def test_other_store_failures_are_internal():
    repository = BaseRepository(User, FailingTable(client_error("ValidationException")))
    with pytest.raises(StoreException) as exc_info:
        repository.get("USER#u1", "PROFILE")
    assert not isinstance(exc_info.value, StoreUnavailableException)
    assert exc_info.value.status_code == 500
