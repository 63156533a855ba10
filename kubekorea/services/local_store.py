import json
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from kubekorea.common.constants import (
    LEGACY_FOLLOW_KEY_PREFIX,
    STORAGE_KEY_POSTS,
    STORAGE_KEY_USER_BIOS,
    STORAGE_KEY_USER_FOLLOWS,
    STORAGE_KEY_USERS,
    STORAGE_KEYS,
)
from kubekorea.common.pagination import filter_posts
from kubekorea.common.utils import generate_id, now_iso
from kubekorea.rdb import repository
from kubekorea.schemas.post import Comment, CreatePostForm, Post
from kubekorea.schemas.user import FollowRelation, User, UserStats

logger = logging.getLogger(__name__)


class LocalStore:
    """
    key -> JSON 값 저장소 위에서 동작하는 게시글/사용자/팔로우 저장소.

    모든 변경은 키 하나의 JSON 값을 통째로 읽고, 수정하고, 다시 쓴다.
    여러 곳에서 동시에 쓰면 마지막에 쓴 값이 남는다.

    저장 키
    - posts: 게시글 목록 (최신 글이 앞)
    - userBios: 사용자 id -> 자기소개
    - userFollows: 사용자 id -> FollowRelation
    - users: 사용자 id -> 프로필
    """

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], str] = now_iso):
        self._session_factory = session_factory
        self._now = clock

    # 저장소 입출력
    def _read(self, key: str, default: Any) -> Any:
        with self._session_factory() as db:
            raw = repository.get_item(db, key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.error("저장소 값 파싱 실패: key=%s", key)
            return default

    def _write(self, key: str, value: Any) -> bool:
        with self._session_factory() as db:
            repository.set_item(db, key, json.dumps(value, ensure_ascii=False))
        return True

    def _remove(self, key: str) -> None:
        with self._session_factory() as db:
            repository.remove_item(db, key)

    def _save_posts(self, posts: List[Post]) -> None:
        self._write(STORAGE_KEY_POSTS, [post.to_json_dict() for post in posts])

    def _read_profiles(self) -> Dict[str, dict]:
        return self._read(STORAGE_KEY_USERS, {})

    # Posts
    def get_posts(self) -> List[Post]:
        return [Post.model_validate(item) for item in self._read(STORAGE_KEY_POSTS, [])]

    def get_post(self, post_id: str) -> Optional[Post]:
        for post in self.get_posts():
            if post.id == post_id:
                return post
        return None

    def _new_post(self, payload: Dict[str, Any]) -> Post:
        data = dict(payload)
        data.setdefault("likes", [])
        data.setdefault("comments", [])
        data["id"] = generate_id()
        data["created_at"] = self._now()
        return Post.model_validate(data)

    def create_post(self, form: CreatePostForm, author: User) -> Post:
        post = self._new_post({**form.model_dump(), "author": author})
        posts = self.get_posts()
        # 최신 게시글이 맨 앞
        posts.insert(0, post)
        self._save_posts(posts)
        return post

    def bulk_create_posts(self, payloads: List[Dict[str, Any]]) -> List[Post]:
        new_posts = [self._new_post(payload) for payload in payloads]
        self._save_posts(new_posts + self.get_posts())
        return new_posts

    def update_post(self, post_id: str, updates: Dict[str, Any]) -> Optional[Post]:
        posts = self.get_posts()
        for index, post in enumerate(posts):
            if post.id == post_id:
                merged = {**post.model_dump(), **updates, "updated_at": self._now()}
                posts[index] = Post.model_validate(merged)
                self._save_posts(posts)
                return posts[index]
        return None

    def delete_post(self, post_id: str) -> bool:
        posts = self.get_posts()
        remaining = [post for post in posts if post.id != post_id]
        if len(remaining) == len(posts):
            return False
        self._save_posts(remaining)
        return True

    def toggle_like(self, post_id: str, user_id: str) -> Optional[Post]:
        post = self.get_post(post_id)
        if post is None:
            return None
        if user_id in post.likes:
            likes = [liker for liker in post.likes if liker != user_id]
        else:
            likes = [*post.likes, user_id]
        return self.update_post(post_id, {"likes": likes})

    def toggle_pin(self, post_id: str) -> Optional[Post]:
        post = self.get_post(post_id)
        if post is None:
            return None
        return self.update_post(post_id, {"pinned": not post.pinned})

    # Comments
    def find_comment(self, post_id: str, comment_id: str) -> Optional[Comment]:
        post = self.get_post(post_id)
        if post is None:
            return None
        for comment in post.comments:
            if comment.id == comment_id:
                return comment
            for reply in comment.replies:
                if reply.id == comment_id:
                    return reply
        return None

    def _new_comment(self, post_id: str, content: str, author: User, parent_id: Optional[str] = None) -> Comment:
        return Comment(
            id=generate_id(),
            content=content.strip(),
            author=author,
            post_id=post_id,
            parent_id=parent_id,
            created_at=self._now(),
        )

    def add_comment(self, post_id: str, content: str, author: User, parent_id: Optional[str] = None) -> Optional[Comment]:
        if parent_id:
            return self.add_reply(post_id, parent_id, content, author)

        posts = self.get_posts()
        for post in posts:
            if post.id == post_id:
                comment = self._new_comment(post_id, content, author)
                post.comments.append(comment)
                self._save_posts(posts)
                return comment
        return None

    def add_reply(self, post_id: str, parent_id: str, content: str, author: User) -> Optional[Comment]:
        """
        답글은 최상위 댓글 아래 한 단계만 둔다.
        답글에 답글을 달면 그 답글의 최상위 댓글에 붙는다.
        """
        posts = self.get_posts()
        for post in posts:
            if post.id != post_id:
                continue
            for comment in post.comments:
                if comment.id == parent_id or any(r.id == parent_id for r in comment.replies):
                    reply = self._new_comment(post_id, content, author, parent_id=comment.id)
                    comment.replies.append(reply)
                    self._save_posts(posts)
                    return reply
            return None
        return None

    def update_comment(self, post_id: str, comment_id: str, content: str) -> Optional[Comment]:
        posts = self.get_posts()
        for post in posts:
            if post.id != post_id:
                continue
            for comment in post.comments:
                targets = [comment, *comment.replies]
                for target in targets:
                    if target.id == comment_id:
                        target.content = content.strip()
                        target.updated_at = self._now()
                        self._save_posts(posts)
                        return target
        return None

    def delete_comment(self, post_id: str, comment_id: str) -> bool:
        posts = self.get_posts()
        for post in posts:
            if post.id != post_id:
                continue
            before = len(post.comments)
            post.comments = [c for c in post.comments if c.id != comment_id]
            if len(post.comments) != before:
                self._save_posts(posts)
                return True
            for comment in post.comments:
                replies = [r for r in comment.replies if r.id != comment_id]
                if len(replies) != len(comment.replies):
                    comment.replies = replies
                    self._save_posts(posts)
                    return True
        return False

    # Users
    def get_users(self) -> List[User]:
        """
        저장된 프로필과 게시글/댓글 작성자를 합쳐 id 기준으로 중복 제거한 사용자 목록
        """
        users: Dict[str, User] = {}
        for post in self.get_posts():
            users.setdefault(post.author.id, post.author)
            for comment in post.comments:
                users.setdefault(comment.author.id, comment.author)
                for reply in comment.replies:
                    users.setdefault(reply.author.id, reply.author)

        # 저장된 프로필이 작성자 스냅샷보다 우선
        for user_id, profile in self._read_profiles().items():
            users[user_id] = User.model_validate(profile)

        bios = self._read(STORAGE_KEY_USER_BIOS, {})
        result = []
        for user in users.values():
            # userBios 항목이 있으면 빈 문자열이어도 프로필 값보다 우선
            if user.id in bios:
                user = user.model_copy(update={"bio": bios[user.id]})
            result.append(user)
        return result

    def get_user(self, user_id: str) -> Optional[User]:
        for user in self.get_users():
            if user.id == user_id:
                return user
        return None

    def find_user_by_email(self, email: str) -> Optional[User]:
        for user in self.get_users():
            if user.email and user.email == email:
                return user
        return None

    def save_user(self, user: User) -> User:
        profiles = self._read_profiles()
        existing = profiles.get(user.id)
        if existing is None and user.created_at is None:
            user = user.model_copy(update={"created_at": self._now()})
        elif existing is not None:
            user = user.model_copy(update={
                "created_at": existing.get("createdAt") or user.created_at,
                "bio": user.bio if user.bio is not None else existing.get("bio"),
            })
        profiles[user.id] = user.to_json_dict()
        self._write(STORAGE_KEY_USERS, profiles)
        return user

    def update_user(self, user_id: str, updates: Dict[str, Any]) -> Optional[User]:
        """
        프로필을 수정하고 게시글/댓글의 작성자 스냅샷도 함께 바꾼다.
        """
        user = self.get_user(user_id)
        if user is None:
            return None

        updated = user.model_copy(update={**updates, "updated_at": self._now()})
        profiles = self._read_profiles()
        profiles[user_id] = updated.to_json_dict()
        self._write(STORAGE_KEY_USERS, profiles)

        if "bio" in updates and updates["bio"] is not None:
            self.update_user_bio(user_id, updates["bio"])

        snapshot = updated.model_copy(update={"bio": None})
        posts = self.get_posts()
        changed = False
        for post in posts:
            if post.author.id == user_id:
                post.author = snapshot
                changed = True
            for comment in post.comments:
                if comment.author.id == user_id:
                    comment.author = snapshot
                    changed = True
                for reply in comment.replies:
                    if reply.author.id == user_id:
                        reply.author = snapshot
                        changed = True
        if changed:
            self._save_posts(posts)

        return updated

    def get_user_bio(self, user_id: str) -> str:
        return self._read(STORAGE_KEY_USER_BIOS, {}).get(user_id, "")

    def update_user_bio(self, user_id: str, bio: str) -> bool:
        bios = self._read(STORAGE_KEY_USER_BIOS, {})
        bios[user_id] = bio
        return self._write(STORAGE_KEY_USER_BIOS, bios)

    # Follows
    def get_follow_data(self) -> Dict[str, FollowRelation]:
        raw = self._read(STORAGE_KEY_USER_FOLLOWS, {})
        return {user_id: FollowRelation.model_validate(value) for user_id, value in raw.items()}

    def _save_follow_data(self, follow_data: Dict[str, FollowRelation]) -> bool:
        return self._write(
            STORAGE_KEY_USER_FOLLOWS,
            {user_id: relation.to_json_dict() for user_id, relation in follow_data.items()},
        )

    def get_follow_relation(self, user_id: str) -> FollowRelation:
        return self.get_follow_data().get(user_id) or FollowRelation(user_id=user_id)

    def follow_user(self, user_id: str, target_user_id: str) -> bool:
        # 자기 자신은 팔로우할 수 없음
        if user_id == target_user_id:
            return False

        follow_data = self.get_follow_data()
        relation = follow_data.setdefault(user_id, FollowRelation(user_id=user_id))
        target = follow_data.setdefault(target_user_id, FollowRelation(user_id=target_user_id))

        if target_user_id not in relation.following:
            relation.following.append(target_user_id)
        if user_id not in target.followers:
            target.followers.append(user_id)

        return self._save_follow_data(follow_data)

    def unfollow_user(self, user_id: str, target_user_id: str) -> bool:
        follow_data = self.get_follow_data()

        if user_id in follow_data:
            relation = follow_data[user_id]
            relation.following = [uid for uid in relation.following if uid != target_user_id]
        if target_user_id in follow_data:
            target = follow_data[target_user_id]
            target.followers = [uid for uid in target.followers if uid != user_id]

        return self._save_follow_data(follow_data)

    def migrate_legacy_follow_keys(self) -> int:
        """
        사용자별 follow_<email> 키를 userFollows로 합치고 기존 키는 삭제한다.
        이메일은 알려진 사용자의 id로 바꾸고, 찾지 못하면 이메일을 id로 쓴다.
        """
        with self._session_factory() as db:
            legacy_keys = repository.find_keys_with_prefix(db, LEGACY_FOLLOW_KEY_PREFIX)
        if not legacy_keys:
            return 0

        ids_by_email = {user.email: user.id for user in self.get_users() if user.email}

        def to_id(email: str) -> str:
            return ids_by_email.get(email, email)

        follow_data = self.get_follow_data()
        for key in legacy_keys:
            owner_id = to_id(key[len(LEGACY_FOLLOW_KEY_PREFIX):])
            legacy = self._read(key, {})
            relation = follow_data.setdefault(owner_id, FollowRelation(user_id=owner_id))
            for email in legacy.get("followers", []):
                if to_id(email) not in relation.followers:
                    relation.followers.append(to_id(email))
            for email in legacy.get("following", []):
                if to_id(email) not in relation.following:
                    relation.following.append(to_id(email))

        self._save_follow_data(follow_data)
        for key in legacy_keys:
            self._remove(key)

        logger.info("레거시 팔로우 키 %d개를 userFollows로 이전했습니다.", len(legacy_keys))
        return len(legacy_keys)

    # Search and Filter
    def search_posts(self, query: str) -> List[Post]:
        return filter_posts(self.get_posts(), query)

    def get_posts_by_category(self, category: str) -> List[Post]:
        return [post for post in self.get_posts() if post.category == category]

    def get_posts_by_user(self, user_id: str) -> List[Post]:
        return [post for post in self.get_posts() if post.author.id == user_id]

    def get_user_stats(self, user_id: str) -> UserStats:
        posts = self.get_posts_by_user(user_id)
        relation = self.get_follow_relation(user_id)
        return UserStats(
            total_posts=len(posts),
            total_comments=sum(len(post.comments) for post in posts),
            total_likes=sum(len(post.likes) for post in posts),
            total_followers=len(relation.followers),
            total_following=len(relation.following),
        )

    def delete_account(self, user_id: str) -> bool:
        """
        사용자의 게시글, 댓글/답글, 좋아요, 자기소개, 프로필, 팔로우 관계를 모두 삭제한다.
        """
        posts = []
        for post in self.get_posts():
            if post.author.id == user_id:
                continue
            post.likes = [liker for liker in post.likes if liker != user_id]
            comments = []
            for comment in post.comments:
                if comment.author.id == user_id:
                    continue
                comment.replies = [r for r in comment.replies if r.author.id != user_id]
                comments.append(comment)
            post.comments = comments
            posts.append(post)
        self._save_posts(posts)

        follow_data = self.get_follow_data()
        follow_data.pop(user_id, None)
        for relation in follow_data.values():
            relation.followers = [uid for uid in relation.followers if uid != user_id]
            relation.following = [uid for uid in relation.following if uid != user_id]
        self._save_follow_data(follow_data)

        bios = self._read(STORAGE_KEY_USER_BIOS, {})
        if bios.pop(user_id, None) is not None:
            self._write(STORAGE_KEY_USER_BIOS, bios)

        profiles = self._read_profiles()
        if profiles.pop(user_id, None) is not None:
            self._write(STORAGE_KEY_USERS, profiles)

        return True

    # 백업 / 복원
    def export_data(self) -> Dict[str, Any]:
        return {
            "posts": self._read(STORAGE_KEY_POSTS, []),
            "userBios": self._read(STORAGE_KEY_USER_BIOS, {}),
            "userFollows": self._read(STORAGE_KEY_USER_FOLLOWS, {}),
            "users": self._read_profiles(),
            "exportedAt": self._now(),
        }

    def import_data(self, data: Dict[str, Any]) -> bool:
        if data.get("posts") is not None:
            posts = [Post.model_validate(item) for item in data["posts"]]
            self._save_posts(posts)
        if data.get("userBios") is not None:
            self._write(STORAGE_KEY_USER_BIOS, data["userBios"])
        if data.get("userFollows") is not None:
            relations = {
                user_id: FollowRelation.model_validate(value)
                for user_id, value in data["userFollows"].items()
            }
            self._save_follow_data(relations)
        if data.get("users") is not None:
            self._write(STORAGE_KEY_USERS, data["users"])
        return True

    def clear_all_data(self) -> bool:
        with self._session_factory() as db:
            legacy_keys = repository.find_keys_with_prefix(db, LEGACY_FOLLOW_KEY_PREFIX)
        for key in (*STORAGE_KEYS, *legacy_keys):
            self._remove(key)
        return True
