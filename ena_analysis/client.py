import enum
import logging

from ena_analysis import ftp
from ena_analysis import submit
from ena_analysis.credentials import Credentials
from ena_analysis.ftp import TransferError
from ena_analysis.submit import Server, SubmissionResult

logger = logging.getLogger(__name__)


class ClientStateError(Exception):
    pass


class State(enum.Enum):
    IDLE = 'idle'
    FILE_STAGED = 'file staged'
    DOCUMENTS_SUBMITTED = 'documents submitted'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    SERVER_ERROR = 'server error'


class SubmissionClient:
    """Drives one analysis submission: upload the data file, submit the XML documents,
    optionally remove the uploaded file again. The steps are blocking and must be called in
    that order; use a separate client for every analysis."""

    def __init__(self, credentials: Credentials, server: Server = Server.TEST):
        self.credentials = credentials
        self.server = server
        self.state = State.IDLE
        self.result = None
        self._upload_failed = False

    def upload_file(self, path: str):
        if self.state not in (State.IDLE, State.FILE_STAGED):
            raise ClientStateError('cannot upload {0}, client is {1}'.format(path, self.state.value))
        try:
            ftp.upload_to_ena(path, self.credentials)
        except TransferError:
            self._upload_failed = True
            raise
        self._upload_failed = False
        self.state = State.FILE_STAGED

    def delete_file(self, path: str) -> bool:
        """Remove an uploaded file. Failures are logged and reported, never raised."""
        try:
            ftp.remove_from_ena(path, self.credentials)
        except TransferError as e:
            logger.warning('could not remove %s from the upload area: %s', path, e)
            return False
        return True

    def submit(self, submission_xml: str, analysis_xml: str, server: Server = None) -> SubmissionResult:
        if self._upload_failed:
            raise ClientStateError('not submitting, the data file upload failed')
        if self.state not in (State.IDLE, State.FILE_STAGED):
            raise ClientStateError('documents already submitted, client is {0}'.format(self.state.value))

        self.state = State.DOCUMENTS_SUBMITTED
        self.result = submit.submit_to_ena(submission_xml, analysis_xml, server or self.server, self.credentials)
        if self.result.success:
            self.state = State.ACCEPTED
        elif self.result.is_server_error:
            self.state = State.SERVER_ERROR
        else:
            self.state = State.REJECTED
        return self.result
