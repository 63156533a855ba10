"""
Local key-value store: posts, comments, users, follows and backups.
"""
import json
from datetime import datetime, timezone

from conftest import ALICE, ADMIN, BOB
from data_builder import DataBuilder, make_comment
from kubekorea.common.utils import parse_iso
from kubekorea.rdb import repository
from kubekorea.schemas.post import CreatePostForm


def create_post(store, author=ALICE, **kwargs):
    form = CreatePostForm(**{"title": "제목", "content": "<p>본문</p>", "category": "discussion", **kwargs})
    return store.create_post(form, author)


class TestPosts:

    def test_create_then_get_preserves_fields(self, store):
        before = datetime.now(timezone.utc)
        post = create_post(store, title="A", content="B", category="tip", tags=["x", "y"])

        loaded = store.get_post(post.id)

        assert loaded.title == "A"
        assert loaded.content == "B"
        assert loaded.tags == ["x", "y"]
        assert loaded.likes == []
        assert loaded.comments == []
        assert parse_iso(loaded.created_at) >= before

    def test_newest_post_is_first(self, store):
        first = create_post(store, title="first")
        second = create_post(store, title="second")

        assert [p.id for p in store.get_posts()] == [second.id, first.id]

    def test_update_post_stamps_updated_at(self, store):
        post = create_post(store)

        updated = store.update_post(post.id, {"title": "새 제목"})

        assert updated.title == "새 제목"
        assert updated.updated_at is not None
        assert store.update_post("missing", {"title": "x"}) is None

    def test_toggle_like_twice_restores(self, store):
        post = create_post(store)

        liked = store.toggle_like(post.id, BOB.id)
        unliked = store.toggle_like(post.id, BOB.id)

        assert liked.likes == [BOB.id]
        assert unliked.likes == []

    def test_toggle_pin(self, store):
        post = create_post(store)

        assert store.toggle_pin(post.id).pinned is True
        assert store.toggle_pin(post.id).pinned is False
        assert store.toggle_pin("missing") is None

    def test_delete_post(self, store):
        post = create_post(store)

        assert store.delete_post(post.id) is True
        assert store.delete_post(post.id) is False
        assert store.get_posts() == []

    def test_bulk_create_posts(self, store):
        created = store.bulk_create_posts([
            {"title": f"글 {i}", "content": "본문", "category": "tip", "author": ALICE.to_json_dict()}
            for i in range(3)
        ])

        assert len(store.get_posts()) == 3
        assert len({post.id for post in created}) == 3

    def test_posts_by_category(self, store):
        create_post(store, title="팁", category="tip")
        create_post(store, title="질문", category="question")

        assert [p.title for p in store.get_posts_by_category("tip")] == ["팁"]
        assert store.get_posts_by_category("news") == []


class TestComments:

    def test_add_comment_and_reply(self, store):
        post = create_post(store)

        comment = store.add_comment(post.id, "  첫 댓글  ", BOB)
        reply = store.add_comment(post.id, "답글", ALICE, parent_id=comment.id)

        loaded = store.get_post(post.id)
        assert comment.content == "첫 댓글"
        assert loaded.comments[0].replies[0].id == reply.id
        assert reply.parent_id == comment.id

    def test_reply_to_reply_attaches_to_top_level_comment(self, store):
        post = create_post(store)
        comment = store.add_comment(post.id, "댓글", BOB)
        reply = store.add_reply(post.id, comment.id, "답글", ALICE)

        nested = store.add_reply(post.id, reply.id, "답글의 답글", BOB)

        loaded = store.get_post(post.id)
        assert nested.parent_id == comment.id
        assert len(loaded.comments) == 1
        assert [r.id for r in loaded.comments[0].replies] == [reply.id, nested.id]

    def test_add_comment_to_missing_post(self, store):
        assert store.add_comment("missing", "댓글", BOB) is None

    def test_update_and_delete_reply(self, store):
        post = create_post(store)
        comment = store.add_comment(post.id, "댓글", BOB)
        reply = store.add_reply(post.id, comment.id, "답글", ALICE)

        updated = store.update_comment(post.id, reply.id, "수정된 답글")
        assert updated.content == "수정된 답글"
        assert store.find_comment(post.id, reply.id).updated_at is not None

        assert store.delete_comment(post.id, reply.id) is True
        assert store.get_post(post.id).comments[0].replies == []
        assert store.delete_comment(post.id, reply.id) is False


class TestUsers:

    def test_get_users_merges_authors_profiles_and_bios(self, store):
        post = create_post(store, author=ALICE)
        store.add_comment(post.id, "댓글", BOB)
        store.save_user(ADMIN)
        store.update_user_bio(BOB.id, "쿠버네티스 운영자")

        users = {user.id: user for user in store.get_users()}

        assert set(users) == {ALICE.id, BOB.id, ADMIN.id}
        assert users[BOB.id].bio == "쿠버네티스 운영자"
        assert store.find_user_by_email("admin@example.com").id == ADMIN.id

    def test_save_user_keeps_created_at(self, store):
        saved = store.save_user(ALICE)
        again = store.save_user(ALICE.model_copy(update={"name": "Alice Kim"}))

        assert again.created_at == saved.created_at
        assert store.get_user(ALICE.id).name == "Alice Kim"

    def test_update_user_rewrites_author_snapshots(self, store):
        post = create_post(store, author=ALICE)
        comment = store.add_comment(post.id, "댓글", ALICE)
        store.add_reply(post.id, comment.id, "답글", ALICE)

        store.update_user(ALICE.id, {"name": "앨리스", "bio": "소개"})

        loaded = store.get_post(post.id)
        assert loaded.author.name == "앨리스"
        assert loaded.comments[0].author.name == "앨리스"
        assert loaded.comments[0].replies[0].author.name == "앨리스"
        assert store.get_user_bio(ALICE.id) == "소개"

    def test_empty_bio_clears_profile_bio(self, store):
        create_post(store, author=ALICE)
        store.update_user(ALICE.id, {"bio": "소개"})

        store.update_user_bio(ALICE.id, "")

        assert store.get_user(ALICE.id).bio == ""
        assert {user.id: user.bio for user in store.get_users()}[ALICE.id] == ""

    def test_update_unknown_user(self, store):
        assert store.update_user("nobody", {"name": "x"}) is None

    def test_user_stats(self, store):
        post = create_post(store, author=ALICE)
        store.add_comment(post.id, "댓글", BOB)
        store.toggle_like(post.id, BOB.id)
        store.follow_user(BOB.id, ALICE.id)

        stats = store.get_user_stats(ALICE.id)

        assert stats.total_posts == 1
        assert stats.total_comments == 1
        assert stats.total_likes == 1
        assert stats.total_followers == 1
        assert stats.total_following == 0


class TestFollows:

    def test_follow_then_unfollow_restores_both_lists(self, store):
        assert store.follow_user(ALICE.id, BOB.id) is True
        assert store.get_follow_relation(ALICE.id).following == [BOB.id]
        assert store.get_follow_relation(BOB.id).followers == [ALICE.id]

        store.unfollow_user(ALICE.id, BOB.id)

        assert store.get_follow_relation(ALICE.id).following == []
        assert store.get_follow_relation(BOB.id).followers == []

    def test_follow_is_idempotent(self, store):
        store.follow_user(ALICE.id, BOB.id)
        store.follow_user(ALICE.id, BOB.id)

        assert store.get_follow_relation(ALICE.id).following == [BOB.id]

    def test_cannot_follow_self(self, store):
        assert store.follow_user(ALICE.id, ALICE.id) is False
        assert store.get_follow_relation(ALICE.id).following == []

    def test_migrate_legacy_follow_keys(self, store):
        store.save_user(ALICE)
        store.save_user(BOB)
        with store._session_factory() as db:
            repository.set_item(db, "follow_alice@example.com", json.dumps({
                "followers": ["carol@example.com"],
                "following": ["bob@example.com"],
            }))

        migrated = store.migrate_legacy_follow_keys()

        assert migrated == 1
        relation = store.get_follow_relation(ALICE.id)
        assert relation.following == [BOB.id]
        assert relation.followers == ["carol@example.com"]
        with store._session_factory() as db:
            assert repository.find_keys_with_prefix(db, "follow_") == []
        assert store.migrate_legacy_follow_keys() == 0


class TestAccountAndBackup:

    def test_delete_account_removes_user_content(self, store):
        alice_post = create_post(store, author=ALICE)
        bob_post = create_post(store, author=BOB)
        comment = store.add_comment(bob_post.id, "앨리스 댓글", ALICE)
        store.add_comment(bob_post.id, "밥 댓글", BOB)
        store.add_reply(bob_post.id, comment.id, "밥 답글", BOB)
        store.toggle_like(bob_post.id, ALICE.id)
        store.follow_user(ALICE.id, BOB.id)
        store.save_user(ALICE)
        store.update_user_bio(ALICE.id, "소개")

        store.delete_account(ALICE.id)

        assert store.get_post(alice_post.id) is None
        remaining = store.get_post(bob_post.id)
        assert [c.content for c in remaining.comments] == ["밥 댓글"]
        assert remaining.likes == []
        assert store.get_follow_relation(BOB.id).followers == []
        assert store.get_user_bio(ALICE.id) == ""
        assert store.get_user(ALICE.id) is None

    def test_export_clear_import(self, store):
        DataBuilder(store).with_user(BOB).with_posts(3).build()
        store.follow_user(ALICE.id, BOB.id)

        exported = store.export_data()
        store.clear_all_data()
        assert store.get_posts() == []

        store.import_data(exported)

        assert len(store.get_posts()) == 3
        assert store.get_follow_relation(ALICE.id).following == [BOB.id]
        assert store.get_user(BOB.id) is not None
        assert "exportedAt" in exported

    def test_builder_comments_survive_import(self, store):
        DataBuilder(store).with_post(post_id="p1", comments=[make_comment("c1")]).build()

        assert store.find_comment("p1", "c1").content == "좋은 글이네요"
