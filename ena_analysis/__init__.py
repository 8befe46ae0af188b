import datetime
from typing import Callable

from ena_analysis.create_xml import Documents, EnaXmlException, render
from ena_analysis.mapping import InvalidAccessionFormat, Mapping, MappingEntry
from ena_analysis.metadata import (Analysis, AnalysisBuilder, AnalysisFile, BuilderClosedError, FileType,
                                   IncompleteAnalysisError, build_analysis)


def analysis(init: Callable[[AnalysisBuilder], None], today: datetime.date = None) -> Documents:
    """Entry point: fill in an analysis inside ``init`` and get back the 'submission' and
    'analysis' XML documents."""
    return render(build_analysis(init, today))
