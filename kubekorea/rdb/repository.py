from typing import List, Optional

from sqlalchemy.orm import Session

from kubekorea.rdb.schema import StorageItem


# 키로 저장된 값 조회
def get_item(db: Session, key: str) -> Optional[str]:
    item = db.get(StorageItem, key)
    return item.value if item else None


# 값 저장 (없으면 생성, 있으면 덮어쓰기)
def set_item(db: Session, key: str, value: str):
    item = db.get(StorageItem, key)
    if item is None:
        db.add(StorageItem(key=key, value=value))
    else:
        item.value = value
    db.commit()


def remove_item(db: Session, key: str):
    db.query(StorageItem).filter(StorageItem.key == key).delete()
    db.commit()


def find_keys_with_prefix(db: Session, prefix: str) -> List[str]:
    rows = db.query(StorageItem.key).filter(StorageItem.key.startswith(prefix, autoescape=True)).all()
    return [row[0] for row in rows]
