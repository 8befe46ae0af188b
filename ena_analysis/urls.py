"""Endpoint configuration, read from ena-urls.cfg in the repository root."""
import configparser
import os


class ConfigException(Exception):
    pass


config_path = os.path.join(os.path.dirname(__file__), '..', 'ena-urls.cfg')

_config = configparser.ConfigParser()
_config.read(config_path)

try:
    test_server = _config['ENA submission']['test']
    production_server = _config['ENA submission']['production']
    verify_ssl = _config['ENA submission'].getboolean('verify ssl', fallback=True)
    ftp_server = _config['ENA ftp']['host']
    ftp_tls = _config['ENA ftp'].getboolean('tls', fallback=True)
    schema_dir = _config.get('ENA schema', 'dir', fallback='')
    sqlite = _config['result DB']['sqlite']
except KeyError as e:
    raise ConfigException('{0} is not set in ena-urls.cfg'.format(e.args[0])) from None
