"""
Form and query validation.
"""
import pytest

from kubekorea.common.exceptions import ValidationError
from kubekorea.common.validation import safe_validate_data, validate_data
from kubekorea.schemas.post import CreateCommentForm, CreatePostForm, PostsQuery, SearchQuery, UpdatePostForm
from kubekorea.schemas.user import UpdateUserForm, UsersQuery


class TestPostValidation:

    def test_short_content_is_accepted(self):
        form = validate_data(CreatePostForm, {"title": "A", "content": "B", "category": "tip", "tags": ["x", "y"]})

        assert form.tags == ["x", "y"]
        assert form.status == "published"

    def test_camel_case_input(self):
        form = validate_data(CreateCommentForm, {"content": "댓글", "postId": "p1", "parentId": "c1"})

        assert form.post_id == "p1"
        assert form.parent_id == "c1"

    def test_collects_every_message(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_data(CreatePostForm, {
                "title": " ",
                "content": "<br/>",
                "category": "memes",
                "tags": [""] + ["t"] * 10,
            })

        assert exc_info.value.messages == [
            "제목은 필수입니다.",
            "내용은 필수입니다.",
            "올바른 카테고리가 아닙니다.",
            "태그는 최대 10개까지 가능합니다.",
            "태그는 비어있을 수 없습니다.",
        ]

    def test_limits(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_data(CreatePostForm, {"title": "t" * 201, "content": "본문", "category": "tip"})

        assert exc_info.value.messages == ["제목은 200자를 넘을 수 없습니다."]

    def test_partial_update_only_checks_given_fields(self):
        assert validate_data(UpdatePostForm, {"tags": ["helm"]}).title is None

        with pytest.raises(ValidationError):
            validate_data(UpdatePostForm, {"status": "deleted"})

    def test_type_errors_are_wrapped(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_data(CreatePostForm, {"title": "A"})

        assert any("content" in message for message in exc_info.value.messages)

    def test_instances_are_checked_too(self):
        with pytest.raises(ValidationError):
            validate_data(CreatePostForm, CreatePostForm(title="A", content="", category="tip"))


class TestOtherValidation:

    def test_user_update(self):
        assert validate_data(UpdateUserForm, {"bio": "안녕하세요"}).bio == "안녕하세요"

        with pytest.raises(ValidationError) as exc_info:
            validate_data(UpdateUserForm, {"name": "", "bio": "x" * 201})

        assert exc_info.value.messages == ["이름은 필수입니다.", "자기소개는 200자를 넘을 수 없습니다."]

    def test_queries(self):
        assert validate_data(PostsQuery, {"page": 2, "limit": 20, "sortBy": "likes"}).sort_by == "likes"
        assert validate_data(PostsQuery, {"category": "all"}).category is None

        with pytest.raises(ValidationError):
            validate_data(PostsQuery, {"limit": 101})
        with pytest.raises(ValidationError):
            validate_data(PostsQuery, {"sort_by": "title"})
        with pytest.raises(ValidationError):
            validate_data(UsersQuery, {"page": 0})

    def test_search_query(self):
        assert validate_data(SearchQuery, {"query": "helm"}).sort_order == "desc"
        assert validate_data(SearchQuery, {"query": "helm", "category": "all"}).category is None

        with pytest.raises(ValidationError):
            validate_data(SearchQuery, {"query": "x" * 101})

    def test_safe_validate(self):
        ok, data, error = safe_validate_data(UpdateUserForm, {"name": "Alice"})
        assert ok and data.name == "Alice" and error is None

        ok, data, error = safe_validate_data(UpdateUserForm, {"name": " "})
        assert not ok and data is None
        assert error == "이름은 필수입니다."
