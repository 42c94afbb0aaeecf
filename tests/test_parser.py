import pytest

from schedio.parser import SimConfig, parse_sysconfig, parse_workload
from schedsim.errors import InvalidConfiguration
from schedsim.policy import FCFSPolicy, MLFQPolicy, RoundRobinPolicy


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def test_defaults():
    config = SimConfig()
    assert isinstance(config.build_policy(), FCFSPolicy)
    assert config.context_switch == 1


def test_parse_sysconfig(tmp_path):
    path = write(tmp_path, 'sysconfig.txt', """
# comment line
policy        MLFQ
mlfqquanta    2 4 8 16   # four levels
boostinterval 30
contextswitch 2
maxtime       500
seed          9
""")
    config = parse_sysconfig(path)
    assert config.policy == 'mlfq'
    assert config.context_switch == 2
    assert config.max_time == 500
    assert config.seed == 9
    policy = config.build_policy()
    assert isinstance(policy, MLFQPolicy)
    assert policy.quanta == (2, 4, 8, 16)
    assert policy.boost_interval == 30


def test_round_robin_quantum(tmp_path):
    config = parse_sysconfig(write(tmp_path, 's.txt', 'policy rr\ntimequantum 6\n'))
    policy = config.build_policy()
    assert isinstance(policy, RoundRobinPolicy)
    assert policy.quantum == 6
    assert config.policy_options('fcfs') == {}


@pytest.mark.parametrize('text,message', [
    ('policy lottery\n', "unknown policy 'lottery'"),
    ('timequantum four\n', 's.txt:1: expected an integer'),
    ('\n\ncpus 4\n', "s.txt:3: unknown directive 'cpus'"),
    ('policy\n', 'policy needs a value'),
    ('policy mlfq\nboostinterval 0\n', 'boost_interval'),
])
def test_bad_sysconfig(tmp_path, text, message):
    with pytest.raises(InvalidConfiguration) as excinfo:
        parse_sysconfig(write(tmp_path, 's.txt', text))
    assert message in str(excinfo.value)


def test_parse_workload(tmp_path):
    path = write(tmp_path, 'w.txt', """
# name arrival burst priority iofrequency
A  0  10
B  1  2   3
C  2  1   7   0.4
""")
    definitions = parse_workload(path)
    assert [(d.name, d.arrival_time, d.burst_time, d.priority, d.io_frequency) for d in definitions] == [
        ('A', 0, 10, 5, 0.0),
        ('B', 1, 2, 3, 0.0),
        ('C', 2, 1, 7, 0.4),
    ]


@pytest.mark.parametrize('text,message', [
    ('A 0\n', 'w.txt:1: expected'),
    ('A 0 5 1 0.2 extra\n', 'w.txt:1: expected'),
    ('A zero 5\n', 'expected an integer'),
    ('A 0 0\n', 'burst_time must be >= 1'),
    ('A 0 4 5 lots\n', 'bad io frequency'),
])
def test_bad_workload(tmp_path, text, message):
    with pytest.raises(InvalidConfiguration) as excinfo:
        parse_workload(write(tmp_path, 'w.txt', text))
    assert message in str(excinfo.value)


def test_missing_file(tmp_path):
    with pytest.raises(OSError):
        parse_sysconfig(str(tmp_path / 'missing.txt'))
