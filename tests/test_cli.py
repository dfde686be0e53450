"""Test the click commands with the network replaced by fakes."""
import json

import pytest
from click.testing import CliRunner

from linkfinder import __version__
from linkfinder.cli.main import cli
from linkfinder.models import SeedItem

from conftest import BASE_URL, FakeExists


class ClosableFake(FakeExists):
    closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_http(monkeypatch):
    """Route probing to an in-memory fake that finds two stills of AB100."""
    monkeypatch.setenv('LINKFINDER_BASE_URL', BASE_URL)
    fake = ClosableFake(found=[f'{BASE_URL}/S/AB100-001.jpg', f'{BASE_URL}/S/AB100-002.jpg'])
    monkeypatch.setattr('linkfinder.cli.probe.HttpExistsCheck', lambda: fake)
    return fake


class TestProbeCommand:

    def test_json_output(self, runner, fake_http):
        result = runner.invoke(cli, ['probe', 'AB100', '--title', '花組 Goethe', '--range', '1', '5', '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data['merged_order'] == [f'{BASE_URL}/S/AB100-001.jpg', f'{BASE_URL}/S/AB100-002.jpg']
        assert data['per_seed']['AB100']['troupe']['id'] == 'hana'
        assert data['truncated'] is False
        assert fake_http.closed

    def test_human_output(self, runner, fake_http):
        result = runner.invoke(cli, ['probe', 'gAB100', '--range', '1', '3'])
        assert result.exit_code == 0, result.output
        assert 'AB100-001.jpg' in result.output
        assert 'derived' in result.output

    def test_bad_range(self, runner, fake_http):
        result = runner.invoke(cli, ['probe', 'AB100', '--range', '9', '1'])
        assert result.exit_code == 2
        assert fake_http.calls == []

    def test_bad_concurrency(self, runner, fake_http):
        result = runner.invoke(cli, ['probe', 'AB100', '--concurrency', '0'])
        assert result.exit_code == 2

    def test_candidate_cap_flag(self, runner, fake_http):
        result = runner.invoke(cli, ['probe', 'AB100', '--max-candidates', '3', '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data['truncated'] is True
        assert data['diagnostics']['total_candidates'] == 3


class TestBatchCommand:

    def test_batch_file(self, runner, fake_http, tmp_path):
        path = tmp_path / 'codes.txt'
        path.write_text('AB100\nZZ900\n', encoding='utf-8')
        result = runner.invoke(cli, ['batch', str(path), '--range', '1', '2', '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert set(data['per_seed']) == {'AB100', 'ZZ900'}
        assert data['per_seed']['ZZ900']['sequences'] == []

    def test_unreadable_seed_file(self, runner, fake_http, tmp_path):
        path = tmp_path / 'bad.json'
        path.write_text('[1, 2]', encoding='utf-8')
        result = runner.invoke(cli, ['batch', str(path)])
        assert result.exit_code == 2


class TestSearchCommands:

    def test_search_json(self, runner, monkeypatch):
        seeds = [SeedItem(seed_id='AB100', title='花組 コレクションカード')]
        monkeypatch.setattr('linkfinder.cli.search.search_listing', lambda *a, **kw: seeds)
        result = runner.invoke(cli, ['search', '--filter', '花組', '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data['title_filter'] == ['花組']
        assert [r['id'] for r in data['results']] == ['AB100']

    def test_search_then_probe(self, runner, monkeypatch, fake_http):
        seeds = [SeedItem(seed_id='AB100')]
        monkeypatch.setattr('linkfinder.cli.search.search_listing', lambda *a, **kw: seeds)
        result = runner.invoke(cli, ['search', 'x', '--probe', '--range', '1', '3', '--json'])
        assert result.exit_code == 0, result.output
        assert len(json.loads(result.output)['merged_order']) == 2

    def test_programs_json(self, runner, monkeypatch):
        captured = {}

        def fake_programs(keywords, year=None, base_url=None):
            captured.update(keywords=list(keywords), year=year)
            return [SeedItem(seed_id='P2501', title='宙組公演プログラム')]

        monkeypatch.setattr('linkfinder.cli.search.search_programs', fake_programs)
        result = runner.invoke(cli, ['programs', '宙組', '--year', '2025', '--json'])
        assert result.exit_code == 0, result.output
        assert captured == {'keywords': ['宙組'], 'year': 2025}
        assert json.loads(result.output)['results'][0]['id'] == 'P2501'


def test_version(runner):
    result = runner.invoke(cli, ['--version'])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestProgramsBatchCommand:

    RESULTS = {
        'Goethe': [SeedItem(seed_id='AB100', title='花組 Goethe プログラム')],
        'Jubilee': [],
    }

    def test_json_keyed_by_line(self, runner, monkeypatch):
        captured = {}

        def fake_batch(lines, year=None, base_url=None):
            captured.update(lines=list(lines), year=year)
            return self.RESULTS

        monkeypatch.setattr('linkfinder.cli.search.search_programs_batch', fake_batch)
        result = runner.invoke(cli, ['programs-batch', '--year', '2025', '--json'],
                               input='Goethe\nJubilee\n')
        assert result.exit_code == 0, result.output
        assert captured == {'lines': ['Goethe', 'Jubilee'], 'year': 2025}
        data = json.loads(result.output)
        assert [r['id'] for r in data['results']['Goethe']] == ['AB100']
        assert data['results']['Jubilee'] == []
        assert 'catalog' not in data

    def test_probe_found_programmes(self, runner, monkeypatch, fake_http, tmp_path):
        monkeypatch.setattr('linkfinder.cli.search.search_programs_batch',
                            lambda lines, year=None, base_url=None: self.RESULTS)
        path = tmp_path / 'lines.txt'
        path.write_text('Goethe\nJubilee\n', encoding='utf-8')
        result = runner.invoke(cli, ['programs-batch', str(path), '--probe', '--range', '1', '3', '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert list(data['catalog']['per_seed']) == ['AB100']
        assert len(data['catalog']['merged_order']) == 2
