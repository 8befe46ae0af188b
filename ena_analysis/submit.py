import enum
import logging
from typing import NamedTuple, Optional
from urllib.parse import quote
from xml.etree import ElementTree

import requests

from ena_analysis import urls
from ena_analysis.create_xml import ANALYSIS_SOURCE
from ena_analysis.credentials import Credentials

logger = logging.getLogger(__name__)

# Known ENA error texts. ENA reports these as free text only, so they are matched as substrings.
SERVER_ERROR = 'Server error'
ALREADY_EXISTS = 'already exists'
ALREADY_EXISTS_AS_ACCESSION = 'already exists as accession'
UPLOAD_MISSING = "don't exist in the drop box or upload area"


class Server(enum.Enum):
    TEST = 'test'
    PRODUCTION = 'production'

    @property
    def base_url(self) -> str:
        if self is Server.TEST:
            return urls.test_server
        return urls.production_server

    def url(self, credentials: Credentials) -> str:
        return '{server}?auth=ENA%20{user}%20{password}'.format(server=self.base_url,
                                                                user=quote(credentials.user, safe=''),
                                                                password=quote(credentials.password, safe=''))


class SubmissionResult(NamedTuple):
    """Represents the response of ENA on programmatic submission."""
    success: bool
    submission_acc: Optional[str] = None
    analysis_acc: Optional[str] = None
    error: str = ''

    @property
    def is_server_error(self) -> bool:
        return SERVER_ERROR in self.error

    @property
    def already_exists(self) -> bool:
        return ALREADY_EXISTS in self.error

    @property
    def upload_missing(self) -> bool:
        return UPLOAD_MISSING in self.error

    @property
    def existing_submission_acc(self) -> Optional[str]:
        """Accession of the earlier submission when ENA rejected a duplicate alias."""
        for line in self.error.splitlines():
            if ALREADY_EXISTS_AS_ACCESSION in line:
                return line.rstrip(' .').split(' ')[-1]
        return None


def _failure(error: str) -> SubmissionResult:
    return SubmissionResult(False, error=error)


def parse_receipt(response: str) -> SubmissionResult:
    """Turn the RECEIPT document returned by the submission endpoint into a result.
    Error messages are kept verbatim, one per line."""
    try:
        tree = ElementTree.fromstring(response)
    except ElementTree.ParseError as e:
        return _failure('{0}: malformed receipt from ENA: {1}'.format(SERVER_ERROR, e))
    if tree.tag != 'RECEIPT':
        return _failure('{0}: unexpected response document <{1}>'.format(SERVER_ERROR, tree.tag))

    if tree.get('success', '').lower() == 'true':
        submission = tree.find('SUBMISSION')
        analysis = tree.find('ANALYSIS')
        submission_acc = submission.get('accession') if submission is not None else None
        analysis_acc = analysis.get('accession') if analysis is not None else None
        if not submission_acc or not analysis_acc:
            return _failure('{0}: successful receipt without submission and analysis accessions'.format(SERVER_ERROR))
        return SubmissionResult(True, submission_acc, analysis_acc, '')
    else:
        error_list = [e.text for e in tree.findall('.//ERROR') if e.text]
        if not error_list:
            error_list = ['submission failed without an error message']
        return _failure('\n'.join(error_list))


def submit_to_ena(submission_xml: str, analysis_xml: str, server: Server, credentials: Credentials,
                  timeout: float = None) -> SubmissionResult:
    """Post the 'submission' and 'analysis' XML documents to ENA. Never raises on transport
    failures; those come back as an unsuccessful result."""
    files = [('SUBMISSION', ('submission.xml', submission_xml, 'text/xml')),
             ('ANALYSIS', (ANALYSIS_SOURCE, analysis_xml, 'text/xml'))]
    logger.info('submitting to %s', server.base_url)
    try:
        r = requests.post(server.url(credentials), files=files, verify=urls.verify_ssl, timeout=timeout)
    except requests.RequestException as e:
        logger.warning('submission to %s failed: %s', server.base_url, type(e).__name__)
        return _failure('{0}: could not reach {1} ({2})'.format(SERVER_ERROR, server.base_url, type(e).__name__))

    result = parse_receipt(r.text)
    if result.success:
        logger.info('ENA accepted submission %s, analysis %s', result.submission_acc, result.analysis_acc)
    else:
        logger.info('ENA rejected submission (HTTP %s): %s', r.status_code, result.error)
    return result
