# coding=utf-8
"""Configuration files for flexcalc.

Functions decorated with `configurable` are collected by walking the package. Each of them
owns one section of an INI file, and the keyword parameters of its signature are the options
of that section. Values read from the file are converted to the annotated parameter types.
"""

import configparser
import importlib
import inspect
import pkgutil
from io import StringIO

import flexcalc
from .exceptions import ConfigurationError


BOOLEAN_STATES = configparser.ConfigParser.BOOLEAN_STATES


def configurable(section, *, exclude=()):
    def decorator(func):
        func.__config_section__ = section
        func.__no_config_parameter__ = list(exclude)
        return func
    return decorator


def config_section(x):
    return getattr(x, "__config_section__", None)


def collect_configurables(module):
    content = [getattr(module, name) for name in dir(module)]
    return [x for x in content if callable(x) and config_section(x)]


def get_parameters(func):
    parameters = inspect.signature(func).parameters
    exclude_from_config = getattr(func, "__no_config_parameter__", [])
    param_dict = {p.name: p.default if p.default is not inspect.Parameter.empty else "EMPTY"
                  for p in parameters.values() if p.name not in exclude_from_config}
    annotation_dict = {}
    for name in param_dict:
        annotation = parameters[name].annotation
        annotation_dict[name] = getattr(annotation, "__name__", annotation)

    return param_dict, annotation_dict


def discover(mod=flexcalc):
    """Map config sections to the functions of package `mod` that consume them"""
    sections = {}
    for importer, modname, ispkg in pkgutil.walk_packages(path=mod.__path__,
                                                          prefix=mod.__name__ + ".",
                                                          onerror=lambda x: None):
        if not ispkg:
            module = importlib.import_module(modname)
            for func in collect_configurables(module):
                sections[config_section(func)] = func
    return sections


def convert_value(name, value, annotation):
    if value == "EMPTY":
        raise ConfigurationError(f"keyword {name} is EMPTY",
                                 ". Please specify a value in the config file.")
    if value == "None":
        return None
    if annotation is inspect.Parameter.empty:
        return value
    if annotation is bool:
        try:
            return BOOLEAN_STATES[value.lower()]
        except KeyError:
            raise ConfigurationError(f"keyword {name} expects a boolean", f" (got {value!r})")
    try:
        return annotation(value)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"could not convert keyword {name} to {annotation.__name__}",
                                 f" (got {value!r})") from e


def convert_to_match_signature(func, keywords):
    keywords = dict(keywords)
    parameters = inspect.signature(func).parameters
    excluded = getattr(func, "__no_config_parameter__", [])
    for k in keywords:
        if k not in parameters or k in excluded:
            raise ConfigurationError(f"unknown keyword {k}",
                                     f" in section [{config_section(func)}]")
        keywords[k] = convert_value(k, keywords[k], parameters[k].annotation)
        if keywords[k] is None and parameters[k].default is not None:
            raise ConfigurationError(f"keyword {k} must not be None",
                                     f" in section [{config_section(func)}]")
    return keywords


def load_config(filename, mod=flexcalc):
    """
    Read an INI file and convert its sections into keyword arguments.

    Returns
    -------
    options: dict
        Maps each section name to a dictionary of converted keyword arguments.
        Sections missing from the file map to an empty dictionary.
    """
    sections = discover(mod)
    cp = configparser.ConfigParser(inline_comment_prefixes=("#",), interpolation=None)
    try:
        with open(filename, "r", encoding="utf-8") as f:
            cp.read_file(f)
    except OSError as e:
        raise ConfigurationError("unable to read config file",
                                 f" ({filename}: {e.strerror})") from e
    except UnicodeDecodeError as e:
        raise ConfigurationError("unable to decode config file",
                                 f" ({filename}: {e.reason})") from e
    except configparser.Error as e:
        raise ConfigurationError("invalid config file", f" ({filename}: {e.message})") from e

    options = {section: {} for section in sections}
    for section in cp.sections():
        if section not in sections:
            raise ConfigurationError(f"unknown config section [{section}]", f" in {filename}")
        options[section] = convert_to_match_signature(sections[section], cp[section])
    return options


def template(mod=flexcalc):
    """Return a commented config file holding the default value of every option"""
    cp = configparser.ConfigParser(allow_no_value=True, interpolation=None)
    cp.optionxform = str
    for section, func in sorted(discover(mod).items()):
        cp.add_section(section)
        doc = inspect.getdoc(func)
        if doc:
            cp.set(section, "# " + doc.splitlines()[0])
        param_dict, annotation_dict = get_parameters(func)
        for name, default in param_dict.items():
            cp.set(section, name, f"{default}  # type {annotation_dict[name]}")

    f = StringIO()
    cp.write(f)
    return f.getvalue()


def main():
    print(template(), end="")


if __name__ == "__main__":
    main()
