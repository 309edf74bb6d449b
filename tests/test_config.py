import pytest

from flexcalc import config
from flexcalc.analysis.flexibility import calculate_flexibility, format_score
from flexcalc.exceptions import ConfigurationError


def test_discover():
    sections = config.discover()

    assert sections == {"Trajectory": calculate_flexibility, "Output": format_score}


def test_get_parameters():
    param_dict, annotation_dict = config.get_parameters(calculate_flexibility)

    assert param_dict == {"header_marker": ">", "strict": True}
    assert annotation_dict == {"header_marker": "str", "strict": "bool"}


def test_template_can_be_loaded(tmp_path):
    template = config.template()
    assert "[Trajectory]" in template
    assert "precision = 4  # type int" in template

    path = tmp_path / "flexcalc.ini"
    path.write_text(template)

    options = config.load_config(str(path))

    assert options == {"Trajectory": {"header_marker": ">", "strict": True},
                       "Output": {"precision": 4}}


def test_load_config_missing_section(tmp_path):
    path = tmp_path / "flexcalc.ini"
    path.write_text("[Trajectory]\nstrict = no\n")

    options = config.load_config(str(path))

    assert options == {"Trajectory": {"strict": False}, "Output": {}}


@pytest.mark.parametrize("content",
                         ["[Trajectory]\nstrict = maybe\n",
                          "[Trajectory]\nfile = traj.txt\n",
                          "[Trajectory]\nunknown = 1\n",
                          "[Output]\nprecision = four\n",
                          "[Output]\nprecision = EMPTY\n",
                          "[Output]\nprecision = None\n",
                          "[Trajectory]\nheader_marker = None\n",
                          "[Plot]\ncolor = red\n",
                          "precision = 4\n",
                          ])
def test_load_config_invalid(tmp_path, content):
    path = tmp_path / "flexcalc.ini"
    path.write_text(content)

    with pytest.raises(ConfigurationError):
        config.load_config(str(path))


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigurationError) as excinfo:
        config.load_config(str(tmp_path / "missing.ini"))
    assert "unable to read config file" in str(excinfo.value)


def test_convert_to_match_signature():
    def reader(*, label: str = None, strict: bool = True):
        pass

    keywords = config.convert_to_match_signature(reader, {"label": "None", "strict": "1"})

    assert keywords == {"label": None, "strict": True}


@pytest.mark.parametrize("keywords", [{"header_marker": "None"}, {"strict": "None"}])
def test_convert_to_match_signature_rejects_none(keywords):
    with pytest.raises(ConfigurationError) as excinfo:
        config.convert_to_match_signature(calculate_flexibility, keywords)
    assert "must not be None" in str(excinfo.value)


def test_main(capsys):
    config.main()
    out, err = capsys.readouterr()

    assert out.startswith("[Output]")
    assert "header_marker = >  # type str" in out


def test_load_config_binary_file(tmp_path):
    path = tmp_path / "flexcalc.ini"
    path.write_bytes(b"[Output]\nprecision = \xff\xfe\n")

    with pytest.raises(ConfigurationError) as excinfo:
        config.load_config(str(path))
    assert "unable to decode config file" in str(excinfo.value)
