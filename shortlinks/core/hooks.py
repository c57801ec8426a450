import importlib
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

ALL_HOOKS = "all"
DEFAULT_PRIORITY = 10


class _Handler:
    __slots__ = ("function", "accepted_args", "type")

    def __init__(self, function: Callable, accepted_args: Optional[int], type: str):
        self.function = function
        self.accepted_args = accepted_args
        self.type = type


class HookRegistry:
    """
    Named extension points. Filters receive a value plus context arguments and
    return the (possibly modified) value; actions are notified and their return
    value is ignored. Handlers run by ascending priority, then registration order.

    ``shunt_*`` filters start from ``None``: a handler returning anything else
    tells the caller to skip its default logic and use that value.
    """

    def __init__(self):
        self._hooks: Dict[str, Dict[int, List[_Handler]]] = defaultdict(lambda: defaultdict(list))
        self._fired: Dict[str, int] = defaultdict(int)

    def add_filter(self, hook: str, function: Callable, priority: int = DEFAULT_PRIORITY,
                   accepted_args: Optional[int] = None, type: str = "filter"):
        self._hooks[hook][priority].append(_Handler(function, accepted_args, type))

    def add_action(self, hook: str, function: Callable, priority: int = DEFAULT_PRIORITY,
                   accepted_args: Optional[int] = None):
        self.add_filter(hook, function, priority, accepted_args, type="action")

    def remove_filter(self, hook: str, function: Callable, priority: int = DEFAULT_PRIORITY) -> bool:
        handlers = self._hooks.get(hook, {}).get(priority)
        if not handlers:
            return False
        for handler in handlers:
            if handler.function == function:
                handlers.remove(handler)
                return True
        return False

    remove_action = remove_filter

    def remove_all_filters(self, hook: str, priority: Optional[int] = None):
        if hook not in self._hooks:
            return
        if priority is None:
            del self._hooks[hook]
        else:
            self._hooks[hook].pop(priority, None)

    def has_filter(self, hook: str, function: Optional[Callable] = None):
        """True if anything is attached to ``hook``; with ``function``, its priority or False."""
        handlers = self._hooks.get(hook, {})
        if function is None:
            return any(handlers.values())
        for priority, registered in handlers.items():
            if any(h.function == function for h in registered):
                return priority
        return False

    has_action = has_filter

    def apply_filter(self, hook: str, value: Any = None, *args) -> Any:
        if ALL_HOOKS in self._hooks:
            self._call_all("filter", hook, (value,) + args)

        if hook not in self._hooks:
            return value

        for priority in sorted(self._hooks[hook]):
            for handler in list(self._hooks[hook][priority]):
                call_args = (value,) + args
                if handler.accepted_args is not None:
                    call_args = call_args[:handler.accepted_args]
                result = handler.function(*call_args)
                if handler.type == "filter":
                    value = result
        return value

    def do_action(self, hook: str, *args):
        self._fired[hook] += 1
        if ALL_HOOKS in self._hooks:
            self._call_all("action", hook, args)
        if hook not in self._hooks:
            return
        for priority in sorted(self._hooks[hook]):
            for handler in list(self._hooks[hook][priority]):
                call_args = args
                if handler.accepted_args is not None:
                    call_args = call_args[:handler.accepted_args]
                handler.function(*call_args)

    def did_action(self, hook: str) -> int:
        return self._fired.get(hook, 0)

    def shunt(self, hook: str, *args) -> Any:
        return self.apply_filter(hook, None, *args)

    def _call_all(self, type: str, hook: str, args: tuple):
        # 'all' handlers only observe; their return value never filters anything
        for priority in sorted(self._hooks[ALL_HOOKS]):
            for handler in list(self._hooks[ALL_HOOKS][priority]):
                if handler.type == type:
                    handler.function(type, hook, args)


def load_plugins(hooks: HookRegistry, plugin_paths: List[str]) -> List[str]:
    """Import each plugin module and let it attach its handlers."""
    loaded = []
    for path in plugin_paths:
        module = importlib.import_module(path)
        register = getattr(module, "register", None)
        if not callable(register):
            logger.warning("Plugin %s has no register(hooks) callable, skipped", path)
            continue
        register(hooks)
        loaded.append(path)
        logger.info("Plugin loaded: %s", path)
    hooks.do_action("plugins_loaded", loaded)
    return loaded
