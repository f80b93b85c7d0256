"""End-to-end tests for the command-line runner and resource checks"""

import pytest
import sys
import os
import json
import pathlib
import re
from types import SimpleNamespace

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from roster.engine.data_loader import load_input
from app import resource_monitor
from app.resource_monitor import (
    SchedulerResourceLimits,
    check_resource_availability,
    estimate_problem_size,
    validate_problem_size,
)
from app.run_scheduler import (
    EXIT_INVALID_INPUT,
    EXIT_OK,
    EXIT_RESOURCES,
    main,
    resolve_paths,
    run,
)

GB = 1024 ** 3


@pytest.fixture
def roomy_host(monkeypatch):
    monkeypatch.setattr(resource_monitor.psutil, 'virtual_memory',
                        lambda: SimpleNamespace(available=8 * GB, percent=40.0))


@pytest.fixture
def busy_host(monkeypatch):
    monkeypatch.setattr(resource_monitor.psutil, 'virtual_memory',
                        lambda: SimpleNamespace(available=8 * GB, percent=99.0))


class TestResourceMonitor:

    def test_problem_size(self, raw_input):
        size = estimate_problem_size(load_input(raw_input))
        assert size == {
            'numEmployees': 1,
            'numDays': 7,
            'numShifts': 1,
            'numRequirements': 1,
            'problemUnits': 7,
        }

    def test_available(self, roomy_host):
        assert check_resource_availability() == (True, None)

    def test_memory_pressure(self, busy_host):
        can_run, reason = check_resource_availability()
        assert not can_run
        assert 'memory usage too high' in reason

    def test_low_free_memory(self, monkeypatch):
        monkeypatch.setattr(resource_monitor.psutil, 'virtual_memory',
                            lambda: SimpleNamespace(available=0.1 * GB, percent=10.0))
        can_run, reason = check_resource_availability()
        assert not can_run
        assert 'Insufficient available memory' in reason

    def test_problem_too_large(self, raw_input, monkeypatch):
        monkeypatch.setattr(SchedulerResourceLimits, 'MAX_PROBLEM_UNITS', 5)
        ok, reason, size = validate_problem_size(load_input(raw_input))
        assert not ok
        assert 'Problem too large' in reason
        assert size['problemUnits'] == 7


class TestRun:

    def test_successful_run(self, raw_input, roomy_host):
        exit_code, output = run(raw_input, request_id='req-1')
        assert exit_code == EXIT_OK
        assert output['status'] == 'SUCCESS'
        assert output['success'] is True
        assert [a['date'] for a in output['assignments']] == [
            '2024-01-01', '2024-01-02', '2024-01-03', '2024-01-04'
        ]
        assert len(output['dailyCoverage']) == 7
        assert output['meta']['requestId'] == 'req-1'
        assert output['meta']['inputHash'].startswith('sha256:')
        assert output['meta']['problemSize']['problemUnits'] == 7
        assert output['health']['metrics']['coverageDeficit'] == 3
        assert output['health']['status'] == 'critical'
        assert [g['date'] for g in output['coverageGaps']] == ['2024-01-05', '2024-01-06', '2024-01-07']

    def test_invalid_input(self, raw_input, roomy_host):
        del raw_input['employees']
        exit_code, output = run(raw_input)
        assert exit_code == EXIT_INVALID_INPUT
        assert output['status'] == 'INVALID_INPUT'
        assert output['assignments'] == []

    def test_host_refuses(self, raw_input, busy_host):
        exit_code, output = run(raw_input)
        assert exit_code == EXIT_RESOURCES
        assert output['status'] == 'RESOURCE_LIMIT'
        assert 'memory usage too high' in output['errors'][0]

    def test_constraint_list_applied(self, raw_input, roomy_host):
        raw_input['constraintList'] = [{'id': 'maximumConsecutiveDays', 'defaultValue': 3}]
        exit_code, output = run(raw_input)
        assert exit_code == 1
        assert output['status'] == 'NEEDS_REVIEW'
        codes = [e['code'] for e in output['validation']['errors']]
        assert codes == ['CONSECUTIVE_DAYS_EXCEEDED']


    def test_time_off_honoured(self, raw_input, roomy_host):
        raw_input['timeOff'] = [{'employeeId': 'E1', 'startDate': '2024-01-02', 'endDate': '2024-01-02'}]
        exit_code, output = run(raw_input)
        assert exit_code == EXIT_OK
        assert output['status'] == 'SUCCESS'
        assert [a['date'] for a in output['assignments']] == ['2024-01-01', '2024-01-03', '2024-01-04']


class TestMain:

    def test_writes_output_file(self, raw_input, roomy_host, tmp_path):
        infile = tmp_path / 'input.json'
        outfile = tmp_path / 'out' / 'roster.json'
        infile.write_text(json.dumps(raw_input), encoding='utf-8')

        exit_code = main(['--in', str(infile), '--out', str(outfile), '--time', '30'])

        assert exit_code == EXIT_OK
        written = json.loads(outfile.read_text(encoding='utf-8'))
        assert written['status'] == 'SUCCESS'
        assert len(written['assignments']) == 4

    def test_validate_only(self, raw_input, tmp_path, capsys):
        del raw_input['shifts']
        infile = tmp_path / 'input.json'
        infile.write_text(json.dumps(raw_input), encoding='utf-8')

        exit_code = main(['--in', str(infile), '--validate-only'])

        assert exit_code == EXIT_INVALID_INPUT
        printed = json.loads(capsys.readouterr().out)
        assert printed['valid'] is False

    def test_resolve_paths_defaults(self):
        infile, outfile = resolve_paths('does-not-exist.json', 'result.json')
        assert infile == pathlib.Path('input') / 'does-not-exist.json'
        assert outfile == pathlib.Path('output') / 'result.json'

        _, generated = resolve_paths('does-not-exist.json')
        assert generated.parent == pathlib.Path('output')
        assert re.fullmatch(r'roster_\d{4}_\d{4}\.json', generated.name)
