"""
Normalising server payloads into domain models.
"""
from datetime import datetime, timezone

from kubekorea.schemas.post import CreatePostForm, UpdatePostForm
from kubekorea.services import transformers


class TestFromApi:

    def test_user_alternate_field_names(self):
        user = transformers.user_from_api({
            "_id": 42,
            "displayName": "민수",
            "avatar": "https://img.example/a.png",
            "github_username": "minsu",
            "joinedAt": "2024-01-02T03:04:05+09:00",
        })

        assert user.id == "42"
        assert user.name == "민수"
        assert user.image == "https://img.example/a.png"
        assert user.github_username == "minsu"
        assert user.created_at == "2024-01-01T18:04:05.000Z"

    def test_post_with_nested_comments(self):
        post = transformers.post_from_api({
            "id": "p1",
            "title": "제목",
            "content": "본문",
            "author": {"id": "u1", "name": "Alice"},
            "createdAt": "2024-05-01T09:00:00.123456Z",
            "comments": [{
                "id": "c1",
                "content": "댓글",
                "author": {"id": "u2"},
                "createdAt": "2024-05-01T09:01:00Z",
                "replies": [{"id": "r1", "content": "답글", "user": {"id": "u1"}, "parent": "c1",
                             "created_at": "2024-05-01T09:02:00Z"}],
            }],
        })

        assert post.category == "discussion"
        assert post.status == "published"
        assert post.created_at == "2024-05-01T09:00:00.123Z"
        assert post.comments[0].replies[0].parent_id == "c1"
        assert post.comments[0].replies[0].author.id == "u1"

    def test_stats_and_follow(self):
        stats = transformers.stats_from_api({"postsCount": 3, "followers": 2})
        relation = transformers.follow_from_api({"followers": ["a"]}, "u1")

        assert (stats.total_posts, stats.total_followers, stats.total_comments) == (3, 2, 0)
        assert relation.user_id == "u1"
        assert relation.following == []

    def test_normalize_date(self):
        assert transformers.normalize_date(None) is None
        assert transformers.normalize_date("") is None
        assert transformers.normalize_date("2024-05-01T09:00:00") == "2024-05-01T09:00:00.000Z"
        naive = datetime(2024, 5, 1, 9, 0, 0, 500000)
        assert transformers.normalize_date(naive) == "2024-05-01T09:00:00.500Z"
        aware = datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)
        assert transformers.normalize_date(aware) == "2024-05-01T18:00:00.000Z"


class TestPaginated:

    def test_plain_list(self):
        page = transformers.paginated_from_api([{"id": "1"}, {"id": "2"}], transformers.user_from_api)

        assert [u.id for u in page.data] == ["1", "2"]
        assert page.pagination.total == 2
        assert page.pagination.total_pages == 1
        assert page.pagination.has_next is False

    def test_results_with_meta(self):
        page = transformers.paginated_from_api(
            {"results": [{"id": "1"}], "meta": {"currentPage": 2, "perPage": 1, "totalCount": 3}},
            transformers.user_from_api,
        )

        assert page.pagination.page == 2
        assert page.pagination.total_pages == 3
        assert page.pagination.has_next is True
        assert page.pagination.has_prev is True

    def test_explicit_flags_win(self):
        page = transformers.paginated_from_api(
            {"data": [], "pagination": {"page": 1, "limit": 10, "total": 0, "totalPages": 0, "hasNext": False}},
            transformers.user_from_api,
        )

        assert page.data == []
        assert page.pagination.total_pages == 0


class TestToApi:

    def test_post_payloads(self):
        form = CreatePostForm(title="A", content="B", category="tip", tags=["x"])

        assert transformers.post_create_to_api(form) == {
            "title": "A", "content": "B", "category": "tip", "tags": ["x"], "status": "published",
        }
        assert transformers.post_update_to_api(UpdatePostForm(title="B")) == {"title": "B"}

    def test_error_shapes(self):
        assert transformers.error_from_api("boom")["message"] == "boom"
        assert transformers.error_from_api({"message": "bad", "code": "E1"})["code"] == "E1"
        assert transformers.error_from_api({"error": "nope"})["message"] == "nope"
        assert transformers.error_from_api({"errors": [{"msg": "title required", "path": "title"}]}) == {
            "message": "title required", "code": None, "field": "title",
        }
        assert transformers.error_from_api({})["code"] == "UNKNOWN_ERROR"
