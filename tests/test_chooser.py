import pytest

from artifact_downloader.chooser import PickChooser
from artifact_downloader.exceptions import SelectionError
from artifact_downloader.models import ChoiceOption

pytestmark = [pytest.mark.unit]

OPTIONS = [
    ChoiceOption(label="ad_hoc - 1.0.0 (5) - a.ipa", value="first"),
    ChoiceOption(label="logs - 1.0.0 (5) - logs.zip", value="second"),
]


@pytest.fixture
def tty(mocker):
    return mocker.patch("artifact_downloader.chooser.sys.stdin.isatty", return_value=True)


def test_returns_value_of_picked_option(tty, mocker):
    mock_pick = mocker.patch(
        "artifact_downloader.chooser.pick", return_value=(OPTIONS[1].label, 1)
    )

    assert PickChooser("Pick one:").choose(OPTIONS) == "second"
    mock_pick.assert_called_once_with(
        [option.label for option in OPTIONS], "Pick one:", indicator="*"
    )


def test_no_options(tty):
    with pytest.raises(SelectionError, match="No options"):
        PickChooser().choose([])


def test_refuses_without_terminal(mocker):
    mocker.patch("artifact_downloader.chooser.sys.stdin.isatty", return_value=False)
    mock_pick = mocker.patch("artifact_downloader.chooser.pick")

    with pytest.raises(SelectionError) as exc_info:
        PickChooser().choose(OPTIONS)

    assert "--artifact-type" in str(exc_info.value)
    mock_pick.assert_not_called()
