from paygate.core.constants import UserRole


def identity_headers(user_id="user-1", *, email="voter@example.com", role=UserRole.USER):
    """Upstream identity headers as Django test client kwargs."""
    headers = {"HTTP_X_USER_ID": str(user_id), "HTTP_X_USER_ROLE": str(role)}
    if email:
        headers["HTTP_X_USER_EMAIL"] = email
    return headers
