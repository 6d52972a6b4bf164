import bcrypt

# Work factor for new hashes. Existing hashes keep the cost they were made with.
BCRYPT_ROUNDS = 10

# bcrypt only looks at the first 72 bytes of input
_MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_PASSWORD_BYTES]


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# Used when the email is unknown so login timing does not leak which accounts exist
DUMMY_HASH = get_password_hash("not-a-real-password")
