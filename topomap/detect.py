import re

import yaml

_YAML_SUFFIX = re.compile(r"\.ya?ml$")


# Loader that tolerates local YAML tags (!Ref, !Sub, templating tags, etc.)
# and decodes the tagged node as if it were untagged.
class ManifestLoader(yaml.SafeLoader):
    pass


def _construct_tagged(loader, suffix, node):
    if isinstance(node, yaml.MappingNode):
        return loader.construct_mapping(node, deep=True)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_scalar(node)


ManifestLoader.add_multi_constructor("!", _construct_tagged)


def is_yaml_file(filename: str) -> bool:
    return bool(_YAML_SUFFIX.search(filename))
