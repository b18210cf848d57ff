"""Sign-in/registration off the UI thread (the Firebase backend is remote)."""
from src.ui.common.workers import TokenWorker


class AuthWorker(TokenWorker):
    """done(token, UserHandle)"""

    def __init__(self, *, token: int, auth, email: str, password: str, register: bool = False):
        super().__init__(token=token)
        self._auth = auth
        self._email = email
        self._password = password
        self._register = register

    def work(self):
        if self._register:
            return self._auth.register(self._email, self._password)
        return self._auth.sign_in(self._email, self._password)
