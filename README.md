# cloudboot

`cloudboot` reads the configuration a machine is given on its first boot:
host name, IP addresses, SSH public keys and raw user data. It also
substitutes the machine's addresses into text, prepares the contents of
`/etc/environment`, and drives systemd units through a unit manager you
supply.

It is a library for Python 3.10 and later. Your own boot-time program picks
the datasources it trusts, asks each whether it is available, and decides
what to do with what it finds.

## Datasources

Every datasource implements `cloudboot.datasource.Datasource`:

- `is_available()` – can the source be read right now?
- `availability_changes()` – may that answer change, so polling is worth it?
- `config_root()` – where the source keeps further configuration, if anywhere
- `fetch_metadata()` – a `cloudboot.datasource.Metadata` record with
  `public_ipv4`, `public_ipv6`, `private_ipv4`, `private_ipv6` (as
  `ipaddress` objects or `None`), `hostname`, `ssh_public_keys` (a dict of
  name to key, or `None`) and `network_config`
- `fetch_userdata()` – the raw user data as bytes
- `source_type()` – a short name for the kind of source

| Module | Class | Reads from | `source_type()` |
| --- | --- | --- | --- |
| `cloudboot.configdrive` | `ConfigDrive(root)` | `openstack/latest/meta_data.json` and `user_data` under a mounted config drive | `cloud-drive` |
| `cloudboot.localfile` | `LocalFile(path)` | a file on local disk | `local-file` |
| `cloudboot.remote` | `RemoteFile(url)` | a URL | `url` |
| `cloudboot.proccmdline` | `ProcCmdline()` | the URL named by `cloud-config-url=` in `/proc/cmdline` | `proc-cmdline` |
| `cloudboot.waagent` | `WAAgent(root)` | `SharedConfig.xml` and `CustomData` in the Azure agent directory | `waagent` |
| `cloudboot.ec2` | `Ec2MetadataService()` | the EC2 metadata service at `http://169.254.169.254/` | `ec2-metadata-service` |
| `cloudboot.digitalocean` | `DigitalOceanMetadataService()` | the DigitalOcean metadata service at `http://169.254.169.254/` | `digitalocean-metadata-service` |
| `cloudboot.packet` | `PacketMetadataService(root)` | a Packet metadata service | `packet-metadata-service` |
| `cloudboot.cloudsigma` | `ServerContextService(client)` | the CloudSigma server context, through a client you provide | `server-context` |
| `cloudboot.vmware` | `VMware`, `new_datasource(file_name)` | an OVF environment document | `vmware` |

Notes on individual sources:

- `ConfigDrive` and `WAAgent` treat missing files as empty. `ConfigDrive`
  reads the file named by `network_config.content_path` into
  `network_config`. Both accept a `read_file` callable for testing.
- `ProcCmdline` relies on `find_cloud_config_url(text)`, which returns the
  last `cloud-config-url` value on a command line (underscores in the flag
  name count as dashes) and raises `LookupError` if there is none.
- `DigitalOceanMetadataService` and `PacketMetadataService` put the decoded
  document (`DigitalOceanMetadata`, or the Packet `NetworkData`) into
  `network_config` and number the SSH keys `"0"`, `"1"`, …
- `ServerContextService` takes the hostname from `name`, falling back to
  `uuid`, and decodes user data listed in `base64_fields`
  (see `is_base64_encoded(field, userdata)`). Its `client` must provide
  `all()`, `key(key)`, `meta()` and `fetch_raw(key)`.
- `VMware` takes a `read_config` callable that looks up guest variables;
  `ovf_read_config(document)` builds one from the `guestinfo.*` properties
  of an OVF environment document. User data may be given inline
  (`coreos.config.data`, optionally encoded as `base64` or `gzip+base64`)
  or by URL (`coreos.config.url`). The interface, address, route and DNS
  variables found are returned as a dict in `network_config`.

## HTTP

The HTTP-based sources share `cloudboot.metadata_service.MetadataService`
and `cloudboot.fetch.HttpClient`. `HttpClient.get(url)` fetches once;
`get_retry(url)` retries transient failures with exponential backoff.
A missing resource raises `NotFoundError`, a timeout raises
`RequestTimeoutError`, and both are `FetchError`s.
`MetadataService.fetch_data(url)` returns empty bytes for a missing
resource. Every HTTP source accepts a `client` argument, so a stand-in
object with `get` and `get_retry` can be used.

## Example

```python
from cloudboot.configdrive import ConfigDrive
from cloudboot.environment import Environment

drive = ConfigDrive("/media/configdrive")
if drive.is_available():
    metadata = drive.fetch_metadata()
    userdata = drive.fetch_userdata()
    env = Environment("/", drive.config_root(), "var/lib/cloudboot",
                      "cloudboot", metadata)
    print(env.apply("listening on $private_ipv4"))
```

## Substitutions and /etc/environment

`cloudboot.environment.Environment(root, config_root, workspace,
ssh_key_name, metadata)` replaces `$public_ipv4`, `$private_ipv4`,
`$public_ipv6` and `$private_ipv6` in text passed to `apply()`. Addresses
come from the metadata, or else from the `COREOS_PUBLIC_IPV4`,
`COREOS_PRIVATE_IPV4`, `COREOS_PUBLIC_IPV6` and `COREOS_PRIVATE_IPV6`
environment variables. A leading backslash (`\$private_ipv4`) keeps the
name as written. The `workspace` property is the workspace joined to
`root`.

`default_environment_file()` returns an `EnvFile` for `/etc/environment`
holding those variables that have a value, or `None` if none do.

## Units

`cloudboot.units` describes systemd units (`Unit`, `UnitDropIn`) and
applies them through any object following the `UnitManager` protocol:

- `create_networking_units(interfaces)` turns `InterfaceGenerator`s into
  runtime `.netdev`, `.link` and `.network` units, skipping empty ones.
- `process_units(units, root, manager)` skips units without a name, places
  unit files and drop-ins, masks (or unmasks runtime units), enables
  non-network units, calls `daemon_reload()` once if anything was written
  (a failure there is raised as `RuntimeError`), restarts
  `systemd-networkd.service` if any network unit was seen, and then runs
  each unit's command in order.

## SSH keys

`cloudboot.sshkeys.fetch_user_keys(url, client=None)` downloads a JSON list
of `{"key": ...}` objects and returns the keys in order.
`github_keys_url(github_user)` gives the address of a GitHub user's key
listing.

## What this package does not do

- It has no command-line program and no boot-time service; it only
  provides the pieces to build one.
- It does not parse user data as cloud-config or scripts.
- It does not write files, set the host name, create users or install SSH
  keys on the system.
- It ships no `UnitManager` that talks to systemd, and no
  `InterfaceGenerator`s; both are supplied by the caller.
- It cannot read VMware guest variables directly from the hypervisor:
  `new_datasource("")` returns a `VMware` source that reports itself
  unavailable.
- It ships no client for the CloudSigma server context.

## Tests

The test suite uses pytest, listed in the `test` extra:

```
pip install -e .[test]
pytest
```