import pytest

from phone_pilot.agent import PhoneAgent

from .fakes import FakeCapture, FakeDevice, fast_config


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def make_agent(device, capture):
    """Factory for agents wired to the fake device and capture."""
    agents = []

    def factory(model, config=None, **kwargs):
        kwargs.setdefault("device", device)
        kwargs.setdefault("screen_capture", capture)
        agent = PhoneAgent(model_client=model, agent_config=config or fast_config(), **kwargs)
        agents.append(agent)
        return agent

    yield factory

    for agent in agents:
        agent.stop()
        agent.join(5)
