from django.conf import settings
from rest_framework_simplejwt.models import TokenUser


class Principal(TokenUser):
    """The caller as described by an already verified access token.

    Built by ``JWTStatelessUserAuthentication``; nothing is read from the
    local database.
    """

    @property
    def email(self):
        return str(self.id)

    @property
    def role(self):
        return self.token.get(settings.LIBRARY['ROLE_CLAIM'])

    @property
    def is_library_admin(self):
        return self.role == settings.LIBRARY['ADMIN_ROLE']

    def __str__(self):
        return self.email
