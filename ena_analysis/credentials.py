"""Webin account used for both the FTP upload area and the submission endpoint."""
import os
from typing import NamedTuple


class EnvironmentException(Exception):
    pass


class Credentials(NamedTuple):
    user: str
    password: str

    def __repr__(self):
        return 'Credentials(user={0!r}, password=***)'.format(self.user)


def from_environment(user_variable: str = 'ena_user', password_variable: str = 'ena_password') -> Credentials:
    """Read ENA username and password from the environment."""
    values = []
    for name in (user_variable, password_variable):
        value = os.environ.get(name)
        if not value:
            raise EnvironmentException('Environment variable {0} is not set.'.format(name))
        values.append(value)
    return Credentials(*values)
