import re
from typing import Dict, Iterable, List, Optional

from kubekorea.schemas.post import Post
from kubekorea.schemas.user import User

MENTION_PATTERN = re.compile(r"@([\w가-힣]+)")


def available_users(post: Optional[Post], exclude_user_id: Optional[str] = None) -> List[User]:
    """
    게시글 작성자와 댓글/답글 작성자 중 멘션할 수 있는 사용자 목록.
    현재 사용자는 제외한다.
    """
    if post is None:
        return []

    users: Dict[str, User] = {post.author.id: post.author}
    for comment in post.comments:
        users[comment.author.id] = comment.author
        for reply in comment.replies:
            users[reply.author.id] = reply.author

    if exclude_user_id:
        users.pop(exclude_user_id, None)
    return list(users.values())


def mention_suggestions(text: str, users: Iterable[User]) -> List[User]:
    # 마지막 '@' 뒤에 입력한 글자가 있어야 제안한다
    at_index = text.rfind("@")
    if at_index == -1:
        return []
    term = text[at_index + 1:]
    if not term:
        return []
    term = term.lower()
    return [user for user in users if term in (user.name or "").lower()]


def apply_mention(text: str, user: User) -> str:
    """입력 중인 마지막 멘션 토큰을 선택한 사용자 이름으로 바꾼다"""
    at_index = text.rfind("@")
    if at_index == -1:
        return f"{text}@{user.name}"
    before = text[:at_index]
    after = re.sub(r"^\S*", "", text[at_index + 1:])
    return f"{before}@{user.name}{after}"


def extract_mentions(text: str, users: Iterable[User]) -> List[User]:
    by_name = {user.name: user for user in users if user.name}
    mentioned: List[User] = []
    for name in MENTION_PATTERN.findall(text or ""):
        user = by_name.get(name)
        if user is not None and user not in mentioned:
            mentioned.append(user)
    return mentioned
