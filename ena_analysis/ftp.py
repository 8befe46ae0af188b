"""Transfer of data files to and from the ENA upload area (the Webin account's FTP home directory)."""
import datetime
import ftplib
import logging
import os
from typing import List

from ena_analysis import urls
from ena_analysis.credentials import Credentials

logger = logging.getLogger(__name__)


class TransferError(Exception):
    pass


def _open_session(credentials: Credentials) -> ftplib.FTP:
    session = ftplib.FTP_TLS() if urls.ftp_tls else ftplib.FTP()
    try:
        session.connect(urls.ftp_server)
        session.login(credentials.user, credentials.password)
        if urls.ftp_tls:
            session.prot_p()
    except ftplib.all_errors:
        session.close()
        raise
    return session


def upload_to_ena(path: str, credentials: Credentials):
    """Store a local file in the upload area under its base name."""
    file_name = os.path.basename(path)
    try:
        with open(path, 'rb') as f, _open_session(credentials) as session:
            session.storbinary('STOR ' + file_name, f)
    except ftplib.all_errors as e:
        raise TransferError('upload of {0} to {1} failed: {2}'.format(path, urls.ftp_server, e)) from e
    _Cache.invalidate()
    logger.info('uploaded %s to %s', file_name, urls.ftp_server)


def remove_from_ena(path: str, credentials: Credentials):
    file_name = os.path.basename(path)
    try:
        with _open_session(credentials) as session:
            session.delete(file_name)
    except ftplib.all_errors as e:
        raise TransferError('removal of {0} from {1} failed: {2}'.format(file_name, urls.ftp_server, e)) from e
    _Cache.invalidate()
    logger.info('removed %s from %s', file_name, urls.ftp_server)


def is_present(file_name: str, credentials: Credentials) -> bool:
    """Caching file lookup. Provided to avoid the overhead of checking for the existence of
    a large number of files one-by-one."""
    cache_key = urls.ftp_server + credentials.user
    now = datetime.datetime.now()
    seconds_since_update = (now - _Cache.last_updated).total_seconds()

    if (cache_key not in _Cache.ftp_dir_content) or (seconds_since_update >= 5):
        _Cache.ftp_dir_content[cache_key] = _list_dir(credentials)
        _Cache.last_updated = datetime.datetime.now()
    return file_name in _Cache.ftp_dir_content[cache_key]


class _Cache:
    ftp_dir_content = dict()
    last_updated = datetime.datetime.now()

    @classmethod
    def invalidate(cls):
        cls.ftp_dir_content.clear()


def _list_dir(credentials: Credentials) -> List[str]:
    try:
        with _open_session(credentials) as session:
            return session.nlst()
    except ftplib.all_errors as e:
        raise TransferError('listing of {0} failed: {1}'.format(urls.ftp_server, e)) from e
