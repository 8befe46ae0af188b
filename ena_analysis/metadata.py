"""Metadata describing a sequence variation analysis, collected through scoped builders.

A builder is handed to a callback (or a ``with`` block), filled in, and then frozen into an
immutable :class:`Analysis` by :meth:`AnalysisBuilder.build`, which checks that everything
ENA requires is present.
"""
import contextlib
import datetime
import enum
import hashlib
import os
import re
from typing import Callable, NamedTuple, Optional, Tuple

from ena_analysis import mapping
from ena_analysis.mapping import Mapping, MappingEntry

_md5_pattern = re.compile(r'^[0-9a-f]{32}$')

REQUIRED_FIELDS = ('alias', 'center_name', 'title', 'description', 'study_reference', 'run_reference')


class IncompleteAnalysisError(Exception):
    def __init__(self, field: str, reason: str = 'is missing or blank'):
        super().__init__("'{0}' {1}".format(field, reason))
        self.field = field


class BuilderClosedError(Exception):
    pass


class FileType(enum.Enum):
    VCF = 'vcf'

    @property
    def requires_assembly(self) -> bool:
        return self is FileType.VCF


class AnalysisFile(NamedTuple):
    file_name: str
    file_type: FileType
    md5: str
    assembly_reference: Optional[str]
    sequence_mapping: Tuple[MappingEntry, ...]
    path: Optional[str] = None


class Analysis(NamedTuple):
    alias: str
    center_name: str
    title: str
    description: str
    study_reference: str
    run_reference: str
    analysis_center: Optional[str]
    broker_name: Optional[str]
    hold_date: Optional[datetime.date]
    sample_mapping: Tuple[MappingEntry, ...]
    files: Tuple[AnalysisFile, ...]


def md5_of_file(path: str, chunk_size: int = 1024 * 1024) -> str:
    digest = hashlib.md5()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b''):
            digest.update(chunk)
    return digest.hexdigest()


def _scope(child, commit: Callable, init: Optional[Callable]):
    """Run ``init`` on a fresh child and hand it to ``commit``, or return a context manager
    doing the same around a ``with`` block. The child is committed only if the scope
    finishes without an exception."""
    if init is not None:
        init(child)
        commit(child)
        return None

    @contextlib.contextmanager
    def scope():
        yield child
        commit(child)

    return scope()


class _Builder:
    def __init__(self):
        self._closed = False

    def _check_open(self):
        if self._closed:
            raise BuilderClosedError('{0} has already been built'.format(type(self).__name__))


class AnalysisFileBuilder(_Builder):
    """Setters for one file attached to the analysis."""

    def __init__(self, file_type: FileType):
        super().__init__()
        self.file_type = file_type
        self._file_name = None
        self._md5 = None
        self._assembly_reference = None
        self._path = None
        self._sequences = []

    def file_name(self, file_name: str):
        self._check_open()
        self._file_name = file_name

    def md5(self, md5: str):
        self._check_open()
        self._md5 = md5

    def data_file(self, path: str):
        """Take file name and checksum from a local file, which is also the file to upload."""
        self._check_open()
        self._path = path
        self._file_name = os.path.basename(path)
        self._md5 = md5_of_file(path)

    def assembly_reference(self, assembly_accession: str):
        self._check_open()
        self._assembly_reference = assembly_accession

    def sequence_mapping(self, init: Callable[[Mapping], None] = None):
        self._check_open()
        return _scope(mapping.sequence_mapping(), self._add_sequences, init)

    def _add_sequences(self, sequences: Mapping):
        self._check_open()
        self._sequences.extend(sequences)

    def build(self, field: str = 'file') -> AnalysisFile:
        if _is_blank(self._file_name):
            raise IncompleteAnalysisError(field + '.file_name')
        if _is_blank(self._md5):
            raise IncompleteAnalysisError(field + '.md5')
        if not _md5_pattern.match(self._md5):
            raise IncompleteAnalysisError(field + '.md5', 'must be 32 lowercase hexadecimal characters')
        if self.file_type.requires_assembly and _is_blank(self._assembly_reference):
            raise IncompleteAnalysisError(field + '.assembly_reference')
        return AnalysisFile(self._file_name, self.file_type, self._md5, self._assembly_reference,
                            tuple(self._sequences), self._path)


class AnalysisBuilder(_Builder):
    """Setters for everything in the 'analysis' and 'submission' XML documents."""

    def __init__(self):
        super().__init__()
        self._fields = dict.fromkeys(REQUIRED_FIELDS)
        self._analysis_center = None
        self._broker_name = None
        self._hold_date = None
        self._samples = []
        self._files = []

    def _set(self, field: str, value: str):
        self._check_open()
        self._fields[field] = value

    def alias(self, alias: str):
        self._set('alias', alias)

    def center_name(self, center_name: str):
        self._set('center_name', center_name)

    def title(self, title: str):
        self._set('title', title)

    def description(self, description: str):
        self._set('description', description)

    def study_reference(self, study_accession: str):
        self._set('study_reference', study_accession)

    def run_reference(self, run_accession: str):
        self._set('run_reference', run_accession)

    def analysis_center(self, analysis_center: str):
        self._check_open()
        self._analysis_center = analysis_center

    def broker_name(self, broker_name: str):
        self._check_open()
        self._broker_name = broker_name

    def hold_date(self, hold_date: datetime.date):
        self._check_open()
        self._hold_date = hold_date

    def sample_mapping(self, init: Callable[[Mapping], None] = None):
        self._check_open()
        return _scope(mapping.sample_mapping(), self._add_samples, init)

    def _add_samples(self, samples: Mapping):
        self._check_open()
        self._samples.extend(samples)

    def vcf(self, init: Callable[[AnalysisFileBuilder], None] = None):
        self._check_open()
        return _scope(AnalysisFileBuilder(FileType.VCF), self._add_file, init)

    def _add_file(self, file: AnalysisFileBuilder):
        self._check_open()
        self._files.append(file)

    def build(self, today: datetime.date = None) -> Analysis:
        """Validate and freeze. Checks run in a fixed order and the first failure is raised."""
        self._check_open()
        for field in REQUIRED_FIELDS:
            if _is_blank(self._fields[field]):
                raise IncompleteAnalysisError(field)

        hold_date = self._hold_date
        if hold_date is not None:
            if isinstance(hold_date, datetime.datetime) or not isinstance(hold_date, datetime.date):
                raise IncompleteAnalysisError('hold_date', 'must be a calendar date without time of day')
            today = today or datetime.date.today()
            if hold_date < today:
                raise IncompleteAnalysisError('hold_date', 'must not be in the past')
            if hold_date == today:
                # same-day hold date: released immediately, no HOLD action
                hold_date = None

        if not self._files:
            raise IncompleteAnalysisError('files', 'must contain at least one data file')
        files = tuple(f.build('files[{0}]'.format(i)) for i, f in enumerate(self._files))
        for i, f in enumerate(files):
            if f.assembly_reference != files[0].assembly_reference:
                raise IncompleteAnalysisError('files[{0}].assembly_reference'.format(i),
                                              'differs from the assembly of the first file')

        self._closed = True
        for f in self._files:
            f._closed = True
        return Analysis(analysis_center=self._analysis_center, broker_name=self._broker_name,
                        hold_date=hold_date, sample_mapping=tuple(self._samples), files=files,
                        **self._fields)


def _is_blank(value) -> bool:
    return value is None or not str(value).strip()


def build_analysis(init: Callable[[AnalysisBuilder], None], today: datetime.date = None) -> Analysis:
    builder = AnalysisBuilder()
    init(builder)
    return builder.build(today)

