import re
from typing import Iterator, NamedTuple, Tuple

SAMPLE = 'sample'
SEQUENCE = 'sequence'

_accession_patterns = {
    # BioSamples (SAMEA/SAMN/SAMD) or INSDC sample accessions (ERS/SRS/DRS)
    SAMPLE: re.compile(r'^(SAM(EA|E|N|D)[0-9]+|[EDS]RS[0-9]+)$'),
    # INSDC (GK000031.2), WGS contig (AAAA01000001.1) or RefSeq (NC_045512.2)
    SEQUENCE: re.compile(r'^([A-Z]{1,2}[0-9]{5,6}|[A-Z]{4,6}[0-9]{8,10}|[A-Z]{2}_[A-Z]{0,4}[0-9]+)(\.[0-9]+)?$'),
}


class InvalidAccessionFormat(Exception):
    def __init__(self, accession: str, kind: str):
        super().__init__('{0!r} is not a valid {1} accession'.format(accession, kind))
        self.accession = accession
        self.kind = kind


class MappingEntry(NamedTuple):
    label: str
    accession: str


class Mapping:
    """Ordered list of (label, accession) pairs, e.g. VCF sample column to sample accession
    or chromosome name to sequence accession."""

    def __init__(self, kind: str):
        self.kind = kind
        self._pattern = _accession_patterns[kind]
        self._entries = []

    def add(self, label: str, accession: str):
        if label is None or not str(label).strip():
            raise ValueError('mapping label must not be empty')
        if not self._pattern.match(accession or ''):
            raise InvalidAccessionFormat(accession, self.kind)
        self._entries.append(MappingEntry(str(label), str(accession)))

    def entries(self) -> Tuple[MappingEntry, ...]:
        return tuple(self._entries)

    def __iter__(self) -> Iterator[MappingEntry]:
        return iter(self.entries())

    def __len__(self):
        return len(self._entries)


def sample_mapping() -> Mapping:
    return Mapping(SAMPLE)


def sequence_mapping() -> Mapping:
    return Mapping(SEQUENCE)
