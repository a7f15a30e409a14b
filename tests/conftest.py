"""Shared builders for marker and sighting fixtures."""
from datetime import datetime, timedelta, timezone

import pytest

from tombstone_analyzer.analyzer.extractor import Marker
from tombstone_analyzer.graveyard import registry
from tombstone_analyzer.graveyard.log_format import Sighting
from tombstone_analyzer.identity import compute_marker_id

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_marker(file_path='app/billing.py', line_number=10, enclosing_function='f',
                metadata=('2024-01-01',), function_name='tombstone'):
    metadata = tuple(metadata)
    return Marker(
        id=compute_marker_id(function_name, metadata, file_path, enclosing_function),
        function_name=function_name,
        file_path=file_path,
        line_number=line_number,
        enclosing_function=enclosing_function,
        metadata=metadata,
    )


def make_sighting(marker_id=None, file_path='app/billing.py', line_number=10,
                  enclosing_function='f', arguments=('2024-01-01',), caller='g',
                  minutes=0, log_file='a.tombstone', sequence=1, function_name='tombstone'):
    return Sighting(
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        caller=caller,
        stack_trace=(),
        marker_id=marker_id,
        function_name=function_name,
        arguments=tuple(arguments),
        file_path=file_path,
        line_number=line_number,
        enclosing_function=enclosing_function,
        log_file=log_file,
        sequence=sequence,
    )


def sighting_for(marker, **kwargs):
    """A sighting recorded by the marker's own call site."""
    kwargs.setdefault('file_path', marker.file_path)
    kwargs.setdefault('line_number', marker.line_number)
    kwargs.setdefault('enclosing_function', marker.enclosing_function)
    kwargs.setdefault('arguments', marker.metadata)
    return make_sighting(marker_id=marker.id, **kwargs)


@pytest.fixture
def clean_registry():
    """Guarantee no process-wide graveyard leaks between tests."""
    registry.reset()
    yield
    registry.reset()
