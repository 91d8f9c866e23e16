import os;
import json;
import logging;
from typing import Self;
import yaml;

Log = logging.getLogger(__name__);

class Config(object):
    '''
    A dictionary of settings, optionally backed by a file.

    fromJSON / from_file read one from disk. A missing or unparsable file falls back to the default
    document, which is then written out so the operator has something to edit.
    The path is remembered, Save writes back to it and Reload refreshes the very same dictionary.
    '''
    FORMAT = "JSON";
    PARSE_ERRORS = (json.JSONDecodeError,);

    def __init__(self, data = None, path : str = None):
        self.cfg = data if data != None else {};
        self.path = path;

    @staticmethod
    def _Parse(text : str):
        return json.loads(text);

    @classmethod
    def fromJSON(cls, jsonPath : str, default : str = None) -> Self:
        return JsonConfig.from_file(jsonPath, default);

    @classmethod
    def FromJSONString(cls, target : str) -> Self:
        return JsonConfig.from_string(target);

    @classmethod
    def FromString(cls, target : str, format : str = "json") -> Self:
        return _FormatClass(format or "json").from_string(target);

    @classmethod
    def from_string(cls, target : str) -> Self:
        if cls is Config:
            return JsonConfig.from_string(target);
        if target == None:
            Log.warning(f"No {cls.FORMAT} document given");
            return None;
        try:
            data = cls._Parse(target);
        except cls.PARSE_ERRORS as e:
            Log.error(f"Invalid {cls.FORMAT} document: {e}");
            return None;
        if data == None:
            data = {};
        if not isinstance(data, dict):
            Log.error(f"Invalid {cls.FORMAT} document: expected an object of settings, got {type(data).__name__}");
            return None;
        return cls(data);

    @classmethod
    def from_file(cls, path : str, default : str = None) -> Self:
        if cls is Config:
            return _FormatClass(os.path.splitext(path)[1]).from_file(path, default);
        try:
            with open(path) as file:
                text = file.read();
        except FileNotFoundError:
            Log.warning(f"Config file not found: {path}");
            text = None;

        if text != None:
            instance = cls.from_string(text);
            if instance != None:
                instance.path = path;
                Log.info(f"Loaded config from {path}");
                return instance;

        if default == None:
            return None;
        Log.info(f"Using the default configuration for {path}");
        instance = cls.from_string(default);
        if instance != None:
            instance.path = path;
            _WriteDefault(path, default);
        return instance;

    def GetValue(self, paramName : str, defaultValue : any):
        return self.cfg.get(paramName, defaultValue);

    def SetValue(self, paramName : str, value : any):
        self.cfg[paramName] = value;

    def Dump(self) -> str:
        return json.dumps(self.cfg, indent = 4);

    def Save(self) -> bool:
        if self.path == None:
            Log.warning("Cannot save config without a file path");
            return False;
        try:
            with open(self.path, "wt") as file:
                file.write(self.Dump());
        except OSError as e:
            Log.error(f"Unable to save config to {self.path}: {e}");
            return False;
        Log.info(f"Configuration changes saved to {self.path}");
        return True;

    def Reload(self) -> bool:
        ''' Re-reads the backing file into this dictionary, keeps the current values if the file is unusable. '''
        if self.path == None:
            Log.warning("Cannot reload config without a file path");
            return False;
        fresh = type(self).from_file(self.path);
        if fresh == None:
            Log.error(f"Reload of {self.path} failed, keeping current values");
            return False;
        values = dict(fresh.cfg);
        self.cfg.clear();
        self.cfg.update(values);
        Log.info(f"Reloaded config from {self.path}");
        return True;

    def MissingKeys(self, target : Self) -> list[str]:
        return [key for key in target.cfg if key not in self.cfg];

    def UpgradeFrom(self, default : str) -> bool:
        ''' Adds the keys of the default document this one lacks and saves, returns whether anything changed. '''
        defaults = type(self).from_string(default);
        if defaults == None:
            return False;
        missing = self.MissingKeys(defaults);
        if len(missing) == 0:
            return False;
        Log.warning("Configuration looks outdated; updating and saving");
        for key in missing:
            Log.debug(f"Adding missing config key '{key}'");
            self.cfg[key] = defaults.cfg[key];
        self.Save();
        return True;


class JsonConfig(Config):
    pass;


class YamlConfig(Config):
    FORMAT = "YAML";
    PARSE_ERRORS = (yaml.YAMLError,);

    @staticmethod
    def _Parse(text : str):
        return yaml.safe_load(text);

    def Dump(self) -> str:
        return yaml.safe_dump(self.cfg, sort_keys = False);


def _FormatClass(name : str):
    ''' Config class for a format name or a file extension, JSON unless it says YAML. '''
    if name.lower().lstrip(".") in ("yaml", "yml"):
        return YamlConfig;
    return JsonConfig;

def _WriteDefault(path : str, default : str):
    try:
        with open(path, "wt") as f:
            f.write(default);
        Log.info(f"Default config file created: {path}");
    except OSError as e:
        Log.error(f"Unable to write default config file {path}: {e}");
