"""
Authentication backend letting customers and taskers sign in with their
email address.
"""

import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend

logger = logging.getLogger(__name__)

User = get_user_model()


class EmailBackend(ModelBackend):
    """
    Authenticate against User.email (case-insensitive).

    Inactive accounts are refused the same way ModelBackend refuses them.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        """
        Authenticate user using email instead of username.

        Args:
            request: HTTP request object
            username: Email address (named username for compatibility)
            password: User password
            **kwargs: May carry 'email' when called by the token serializer

        Returns:
            User object if authentication successful, None otherwise
        """
        email = kwargs.get('email', username)

        if email is None or password is None:
            return None

        try:
            user = User.objects.get(email__iexact=email.strip())
        except User.DoesNotExist:
            # Hash once so unknown emails take as long as wrong passwords
            User().set_password(password)
            logger.info(f"Failed login for unknown email: {email}")
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user

        logger.info(f"Failed login for user ID: {user.id}")
        return None
