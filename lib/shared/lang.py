import logging;
import lib.shared.config as config;

Log = logging.getLogger(__name__);

DEFAULT_LANGUAGE = "en";

class MessageCatalog():
    '''
    Message templates per plugin and per language.

    Templates use str.format placeholders, e.g. "{0} votes out of {1} needed.".
    '''
    def __init__(self, defaultLanguage : str = DEFAULT_LANGUAGE):
        self._defaultLanguage = defaultLanguage;
        self._messages = dict[str, dict[str, dict[str, str]]]();
        self._userLanguages = dict[str, str]();

    def GetDefaultLanguage(self) -> str:
        return self._defaultLanguage;

    def SetUserLanguage(self, userId, lang : str):
        self._userLanguages[str(userId)] = lang;

    def GetUserLanguage(self, userId) -> str:
        if userId == None:
            return self._defaultLanguage;
        return self._userLanguages.get(str(userId), self._defaultLanguage);

    # Existing keys are kept, so overrides loaded before registration survive.
    def RegisterMessages(self, plugin : str, messages : dict[str, str], lang : str = DEFAULT_LANGUAGE) -> int:
        table = self._messages.setdefault(lang, {}).setdefault(plugin, {});
        added = 0;
        for key in messages:
            if key not in table:
                table[key] = messages[key];
                added += 1;
        Log.debug("Registered %d messages for %s (%s)" % (added, plugin, lang));
        return added;

    def LoadOverrides(self, plugin : str, path : str, lang : str = DEFAULT_LANGUAGE) -> int:
        cfg = config.Config.fromJSON(path);
        if cfg == None:
            return 0;
        table = self._messages.setdefault(lang, {}).setdefault(plugin, {});
        for key in cfg.cfg:
            table[key] = str(cfg.cfg[key]);
        Log.info("Loaded %d message overrides for %s from %s" % (len(cfg.cfg), plugin, path));
        return len(cfg.cfg);

    def GetMessages(self, plugin : str, lang : str = DEFAULT_LANGUAGE) -> dict[str, str]:
        return self._messages.get(lang, {}).get(plugin, {}).copy();

    def GetMessage(self, key : str, plugin : str, userId = None) -> str:
        lang = self.GetUserLanguage(userId);
        for candidate in (lang, self._defaultLanguage):
            table = self._messages.get(candidate, {}).get(plugin, {});
            if key in table:
                return table[key];
        Log.warning("Missing message %s for plugin %s" % (key, plugin));
        return key;

    def Format(self, key : str, plugin : str, *args, userId = None) -> str:
        template = self.GetMessage(key, plugin, userId);
        try:
            return template.format(*args);
        except (IndexError, KeyError, ValueError) as e:
            Log.error("Bad message template %s for plugin %s : %s" % (key, plugin, str(e)));
            return template;
