import unittest

import pytest

from litemodule import MissingDependencyError, ResolutionError, ServiceFactory, ServiceKey, ServiceModule


class Config:
    def __init__(self, debug=False):
        self.debug = debug


class Logger:
    def __init__(self, config):
        self.config = config


class App:
    def __init__(self, config, logger):
        self.config = config
        self.logger = logger


CONFIG = ServiceKey[Config]("Config")
LOGGER = ServiceKey[Logger]("Logger")
APP = ServiceKey[App]("App")


class TestResolution(unittest.IsolatedAsyncioTestCase):
    async def test_get_resolves_app_with_config_and_logger(self):
        module = ServiceModule.compose(
            [
                ServiceFactory.singleton(provides=CONFIG, initialize=lambda: Config(debug=True)),
                ServiceFactory.singleton(provides=LOGGER, depends_on=[CONFIG], initialize=Logger),
                ServiceFactory.singleton(provides=APP, depends_on=[CONFIG, LOGGER], initialize=App),
            ]
        )

        app = await module.get(APP)

        assert isinstance(app, App)
        assert app.config is await module.get(CONFIG)
        assert app.logger is await module.get(LOGGER)
        assert app.logger.config is app.config
        assert app.config.debug

    def test_compose_app_without_dependencies_fails(self):
        with pytest.raises(MissingDependencyError) as exc_info:
            ServiceModule.compose([ServiceFactory.singleton(provides=APP, depends_on=[CONFIG, LOGGER], initialize=App)])

        message = str(exc_info.value)
        assert "Config" in message
        assert "Logger" in message

    async def test_get_passes_dependencies_in_declared_order(self):
        first, second, pair = ServiceKey("first"), ServiceKey("second"), ServiceKey("pair")

        module = ServiceModule.compose(
            [
                ServiceFactory.singleton(provides=first, initialize=lambda: 1),
                ServiceFactory.singleton(provides=second, initialize=lambda: 2),
                ServiceFactory.one_shot(provides=pair, depends_on=[second, first], initialize=lambda *deps: deps),
            ]
        )

        assert await module.get(pair) == (2, 1)

    async def test_get_awaits_async_initializers_through_the_graph(self):
        async def make_config():
            return Config()

        async def make_logger(config):
            return Logger(config)

        module = ServiceModule.compose(
            [
                ServiceFactory.singleton(provides=CONFIG, initialize=make_config),
                ServiceFactory.one_shot(provides=LOGGER, depends_on=[CONFIG], initialize=make_logger),
            ]
        )

        logger = await module.get(LOGGER)

        assert isinstance(logger, Logger)
        assert isinstance(logger.config, Config)

    async def test_get_one_shot_dependency_is_fresh_per_dependent(self):
        token, holder = ServiceKey("token"), ServiceKey("holder")

        module = ServiceModule.compose(
            [
                ServiceFactory.one_shot(provides=token, depends_on=[], initialize=object),
                ServiceFactory.one_shot(provides=holder, depends_on=[token], initialize=lambda t: t),
            ]
        )

        assert await module.get(holder) is not await module.get(holder)

    async def test_get_unregistered_key_raises_resolution_error(self):
        module = ServiceModule.compose([])
        missing = ServiceKey("Missing")

        with pytest.raises(ResolutionError, match="Could not find a suitable factory for Missing") as exc_info:
            await module.get(missing)

        assert exc_info.value.key is missing
        assert isinstance(exc_info.value, LookupError)

    async def test_get_same_named_key_is_not_resolved(self):
        module = ServiceModule.compose([ServiceFactory.singleton(provides=CONFIG, initialize=Config)])

        with pytest.raises(ResolutionError):
            await module.get(ServiceKey("Config"))

    async def test_initializer_error_propagates_unwrapped(self):
        class BrokenError(Exception): ...

        def broken(config):
            raise BrokenError("nope")

        module = ServiceModule.compose(
            [
                ServiceFactory.singleton(provides=CONFIG, initialize=Config),
                ServiceFactory.singleton(provides=LOGGER, depends_on=[CONFIG], initialize=broken),
            ]
        )

        with pytest.raises(BrokenError):
            await module.get(LOGGER)

        config = module.factories[0]
        assert config.has_instance, "sibling singleton stays cached after a failed resolution"

    async def test_modules_do_not_share_cached_state_through_keys(self):
        first = ServiceModule.compose([ServiceFactory.singleton(provides=CONFIG, initialize=Config)])
        second = ServiceModule.compose([ServiceFactory.singleton(provides=CONFIG, initialize=Config)])

        assert await first.get(CONFIG) is not await second.get(CONFIG)

    def test_module_supports_introspection(self):
        factory = ServiceFactory.singleton(provides=CONFIG, initialize=Config)
        module = ServiceModule.compose([factory])

        assert list(module) == [factory]
        assert CONFIG in module
        assert APP not in module
        assert repr(module) == "ServiceModule(Config)"
