import importlib;
import importlib.util;
import logging;
import time;
import traceback;
import pluginExports;

Log = logging.getLogger(__name__);

# Module level functions every plugin has to define.
PLUGIN_HOOKS = ("OnInitialize", "OnStart", "OnLoop", "OnEvent", "OnFinish");

class Plugin():
    '''
    Wraps one loaded plugin module and calls its hooks.

    Loop and Event never let a plugin exception escape, the host keeps ticking the other plugins.
    '''
    def __init__(self, module):
        self._module = module;
        self._hooks = {};
        self._isFinished = False;
        self._exports = pluginExports.ExportTable();

    def GetName(self) -> str:
        return self._module.__name__;

    def _Call(self, hook : str, *args):
        return self._hooks[hook](*args);

    def Initialize(self, data : any) -> bool:
        missing = [hook for hook in PLUGIN_HOOKS if not callable(getattr(self._module, hook, None))];
        if len(missing) > 0:
            Log.error("Plugin %s does not define %s." % (self.GetName(), ", ".join(missing)));
            return False;
        self._hooks = {hook : getattr(self._module, hook) for hook in PLUGIN_HOOKS};
        return bool(self._Call("OnInitialize", data, self._exports));

    def Start(self) -> bool:
        started = time.time();
        Log.info("Starting plugin %s.", self.GetName());
        rslt = bool(self._Call("OnStart"));
        if rslt:
            Log.info("Plugin %s started in %.2f seconds." % (self.GetName(), time.time() - started));
        return rslt;

    def Loop(self):
        try:
            self._Call("OnLoop");
        except Exception as ex:
            Log.error("Exception [%s] in loop tick of plugin [%s]\n %s", str(ex), self.GetName(), traceback.format_exc());

    def Event(self, event) -> bool:
        try:
            return bool(self._Call("OnEvent", event));
        except Exception as ex:
            Log.error("Exception [%s] while plugin [%s] handled event %d\n %s", str(ex), self.GetName(), event.type, traceback.format_exc());
            return False;

    def Finish(self):
        if self._isFinished or len(self._hooks) == 0:
            return;
        self._isFinished = True;
        Log.info("Finishing plugin %s...", self.GetName());
        self._Call("OnFinish");

    def GetExports(self) -> pluginExports.ExportTable:
        return self._exports.copy();

class PluginManager():
    def __init__(self):
        self._plugins = dict[str, Plugin]();
        self._isFinished = False;

    # Plugins that fail to load are logged and skipped, the rest still run.
    def Initialize(self, targetPlugins : list, data : any) -> bool:
        Log.info("Loading %d plugins..." % len(targetPlugins));
        for entry in targetPlugins:
            path = entry["path"];
            loaded = self.LoadPlugin(path, data);
            if loaded != None:
                self._plugins[path] = loaded;
        Log.info("Loaded %d of %d plugins." % (len(self._plugins), len(targetPlugins)));
        return True;

    def LoadPlugin(self, name : str, data : any) -> Plugin:
        Log.info("Loading plugin %s...", name);
        if importlib.util.find_spec(name) == None:
            Log.error("Unable to locate plugin %s" % name);
            return None;
        mod = importlib.import_module(name);
        Log.debug("Plugin %s comes from %s" % (name, mod.__file__));
        started = time.time();
        newPlug = Plugin(mod);
        if not newPlug.Initialize(data):
            Log.error("Plugin %s failed to initialize." % name);
            return None;
        Log.info("Plugin %s initialized in %.2f seconds." % (name, time.time() - started));
        return newPlug;

    def Start(self) -> bool:
        for name, plug in self._plugins.items():
            if not plug.Start():
                Log.error("Failed to start plugin %s." % name);
                return False;
        return True;

    def Loop(self):
        for plug in self._plugins.values():
            plug.Loop();

    # Stops at the first plugin that captures the event.
    def Event(self, event) -> bool:
        for plug in self._plugins.values():
            if plug.Event(event):
                return True;
        return False;

    def Finish(self):
        if self._isFinished:
            return;
        self._isFinished = True;
        for plug in self._plugins.values():
            plug.Finish();
        Log.info("All plugins finished.");

    def GetPlugin(self, name : str) -> Plugin:
        return self._plugins.get(name, None);
