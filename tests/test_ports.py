import logging

import pytest

from ak_asset_storage.errors import ApplicationError
from ak_asset_storage.ports import (
    AkApiClient,
    BundleRepository,
    DockerService,
    FileRepository,
    GithubService,
    ItemDemandRepository,
    NotificationService,
    Repository,
    ScheduledTask,
    StorageService,
    TorappuAssetService,
    VersionRepository,
)


@pytest.mark.parametrize(
    "interface",
    [
        AkApiClient,
        StorageService,
        NotificationService,
        TorappuAssetService,
        DockerService,
        GithubService,
        Repository,
        VersionRepository,
        FileRepository,
        BundleRepository,
        ItemDemandRepository,
        ScheduledTask,
    ],
)
def test_interfaces_cannot_be_instantiated(interface):
    with pytest.raises(TypeError):
        interface()


class CountingTask(ScheduledTask):
    def __init__(self):
        self.runs = 0

    async def run(self):
        self.runs += 1

    def interval(self):
        return 0.5


class PartialNotifier(NotificationService):
    async def notify_update(self, old_client, old_res, new_client, new_res):
        return None


class PartialTask(ScheduledTask):
    def interval(self):
        return 1.0


def test_scheduled_task_defaults():
    task = CountingTask()
    assert ScheduledTask.should_continue(task) is True
    ScheduledTask.stop(task)
    assert ScheduledTask.should_continue(task) is True


def test_default_on_error_logs(caplog):
    task = CountingTask()
    with caplog.at_level(logging.ERROR):
        ScheduledTask.on_error(task, ApplicationError("boom"))
    assert "Task execution failed" in caplog.text
    assert "boom" in caplog.text


def test_partial_implementation_is_rejected():
    with pytest.raises(TypeError):
        PartialNotifier()
    with pytest.raises(TypeError):
        PartialTask()
    complete = CountingTask()
    assert ScheduledTask.should_continue(complete) is True
    assert complete.interval() == 0.5