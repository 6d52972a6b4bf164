from typing import Optional

from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import PromptNotFoundError
from app.core.security import DUMMY_HASH, get_password_hash, verify_password
from app.models.api_key import ApiKey
from app.models.prompt import Prompt
from app.models.user import User


# --- Users ---

def create_user(
    db: Session,
    email: str,
    password: str,
    name: Optional[str] = None,
    commit: bool = True,
) -> User:
    """With ``commit=False`` the row is only flushed so the caller can finish the transaction."""
    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        name=name,
    )
    db.add(user)
    if not commit:
        db.flush()
        return user
    db.commit()
    db.refresh(user)
    return user


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    # Exact, case-sensitive match
    return db.query(User).filter(User.email == email).first()


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(db, email)
    if not user:
        verify_password(password, DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# --- Prompts ---

def create_prompt(
    db: Session,
    user_id: int,
    input: str,
    enhanced: str,
    prompt_type: str,
    image_url: Optional[str] = None,
    voice_url: Optional[str] = None,
    context: Optional[str] = None,
    favorite: str = "false",
) -> Prompt:
    prompt = Prompt(
        user_id=user_id,
        input=input,
        enhanced=enhanced,
        favorite=favorite,
        prompt_type=prompt_type,
        image_url=image_url,
        voice_url=voice_url,
        context=context,
    )
    db.add(prompt)
    db.commit()
    db.refresh(prompt)
    return prompt


def get_prompts(db: Session) -> list[Prompt]:
    return db.query(Prompt).order_by(Prompt.timestamp, Prompt.id).all()


def get_prompts_by_user(db: Session, user_id: int) -> list[Prompt]:
    return (
        db.query(Prompt)
        .filter(Prompt.user_id == user_id)
        .order_by(Prompt.timestamp, Prompt.id)
        .all()
    )


def toggle_favorite(db: Session, prompt_id: int, user_id: int) -> Prompt:
    """Flip the favorite flag of one of ``user_id``'s prompts.

    The flip happens inside a single UPDATE, so two concurrent toggles
    cannot both read the old value and cancel each other out.
    """
    result = db.execute(
        update(Prompt)
        .where(Prompt.id == prompt_id, Prompt.user_id == user_id)
        .values(favorite=case((Prompt.favorite == "true", "false"), else_="true"))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise PromptNotFoundError()
    db.commit()

    prompt = db.query(Prompt).filter(Prompt.id == prompt_id).first()
    db.refresh(prompt)
    return prompt


# --- API keys ---

def get_api_key(db: Session, user_id: int, provider: str) -> Optional[ApiKey]:
    return db.query(ApiKey).filter(
        ApiKey.user_id == user_id,
        ApiKey.provider == provider,
    ).first()


def get_all_api_keys(db: Session, user_id: int) -> list[ApiKey]:
    return db.query(ApiKey).filter(ApiKey.user_id == user_id).order_by(ApiKey.provider).all()


def set_api_key(db: Session, user_id: int, provider: str, api_key: str, model: str) -> ApiKey:
    """Store the credential for (user, provider), replacing any previous one.

    The unique constraint on (user_id, provider) keeps a single row per pair;
    an insert that loses a race with a concurrent caller is retried as an update.
    """
    record = get_api_key(db, user_id, provider)
    if record:
        record.api_key = api_key
        record.model = model
        db.commit()
        db.refresh(record)
        return record

    record = ApiKey(user_id=user_id, provider=provider, api_key=api_key, model=model)
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        record = get_api_key(db, user_id, provider)
        if record is None:
            raise
        record.api_key = api_key
        record.model = model
        db.commit()
    db.refresh(record)
    return record
