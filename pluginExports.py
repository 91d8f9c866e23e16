import logging;

Log = logging.getLogger(__name__);

# A named value one plugin publishes for the others, usually a bound method.
class ExportInstance():
    def __init__(self, name : str, pointer : any, isFunc : bool = True):
        self.name = name;
        self.pointer = pointer;
        self.isfunc = isFunc;

    def __repr__(self):
        return "ExportInstance(%s, func=%s)" % (self.name, str(self.isfunc));

class ExportTable():
    def __init__(self):
        self._byName = dict[str, ExportInstance]();

    def Add(self, name : str, pointer : any, isFunc : bool = True):
        if name in self._byName:
            Log.warning("Export %s is published twice, the last one wins" % name);
        self._byName[name] = ExportInstance(name, pointer, isFunc);

    def Get(self, name : str) -> ExportInstance:
        return self._byName.get(name, None);

    def Names(self) -> list[str]:
        return list(self._byName.keys());

    def __contains__(self, name : str) -> bool:
        return name in self._byName;

    def __len__(self) -> int:
        return len(self._byName);

    def copy(self):
        clone = ExportTable();
        clone._byName = self._byName.copy();
        return clone;
