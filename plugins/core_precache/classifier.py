# plugins/core_precache/classifier.py
from .contracts import Classification

COMPILED_SUFFIX = "_c"

# Source 2 可预缓存的资源类型。归档内保存的是编译后的 `<type>_c`，
# 而引擎的预缓存接口使用未编译的逻辑名。
RESOURCE_TYPES = frozenset({
    "vmdl",     "vmdl_c",
    "vpcf",     "vpcf_c",
    "vmat",     "vmat_c",
    "vcompmat", "vcompmat_c",
    "vtex",     "vtex_c",
    "vsnd",     "vsnd_c",
    "vdata",    "vdata_c",
    "vpost",    "vpost_c",
    "vsurf",    "vsurf_c",
    "vanim",    "vanim_c",
    "vanmgrph", "vanmgrph_c",
    "vseq",     "vseq_c",
    "vmix",     "vmix_c",
    "vnmclip",  "vnmclip_c",
    "vrman",    "vrman_c",
    "vrr",      "vrr_c",
    "vsc",
    "vsmart",   "vsmart_c",
    "vsnap",    "vsnap_c",
    "vsndevts", "vsndevts_c",
    "vsndgrps",
    "vsndstck", "vsndstck_c",
    "vsvg",     "vsvg_c",
    "vts",      "vts_c",
    "vxml",     "vxml_c",
})


def normalize_path(path: str) -> str:
    """引擎总是使用正斜杠作为资源路径分隔符，与宿主操作系统无关。"""
    return path.replace("\\", "/")


def strip_compiled_suffix(path: str) -> str:
    if path.endswith(COMPILED_SUFFIX):
        return path[:-len(COMPILED_SUFFIX)]
    return path


def extension_of(path: str) -> str:
    """最后一个路径段中最后一个 '.' 之后的部分；没有 '.' 时为空字符串。"""
    name = path.rsplit("/", 1)[-1]
    _, dot, extension = name.rpartition(".")
    return extension if dot else ""


def is_resource_type(bucket: str) -> bool:
    return bucket in RESOURCE_TYPES


def classify(path: str) -> Classification:
    """去掉一个编译标记后，只接受未编译的资源类型名。"""
    resource_path = strip_compiled_suffix(normalize_path(path))
    extension = extension_of(resource_path)
    return Classification(
        path=resource_path,
        extension=extension,
        accepted=is_resource_type(extension) and not extension.endswith(COMPILED_SUFFIX)
    )
