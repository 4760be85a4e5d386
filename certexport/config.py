# 证书导出工具的主要配置和设置

# 搜索设置
DEFAULT_SEARCH_TERM = "localhost"  # 默认搜索词
DEFAULT_OUTPUT_DIR = "exported-certs"

# 证书存储名称 (对应平台证书库中的 Personal / Root)
PERSONAL_STORE = "Personal"
ROOT_STORE = "Root"

# PEM设置
PEM_LINE_WIDTH = 64
PEM_LABEL_CERTIFICATE = "CERTIFICATE"
PEM_LABEL_PRIVATE_KEY = "PRIVATE KEY"          # PKCS#8
PEM_LABEL_RSA_PRIVATE_KEY = "RSA PRIVATE KEY"  # PKCS#1

# SAN扩展设置
SAN_OID = "2.5.29.17"
SAN_UNPARSED_PLACEHOLDER = "SAN present but could not parse"
SAN_STRATEGIES = ("permissive", "strict")
DEFAULT_SAN_STRATEGY = "permissive"  # 与旧版本的逐字节扫描保持一致

# 私钥导出设置
KEY_FORMATS = ("auto", "pkcs8", "pkcs1", "manual")
DEFAULT_KEY_FORMAT = "auto"
# False = 信任调用方提供的整数字节 (旧版本行为)
NORMALIZE_INTEGER_SIGN = False

# 输出文件设置
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
MAX_FILENAME_LENGTH = 50
DEFAULT_COMMON_NAME = "certificate"

# 可读取的证书文件扩展名
CERT_FILE_SUFFIXES = (".crt", ".cer", ".pem", ".der", ".key", ".pfx", ".p12")
PKCS12_SUFFIXES = (".pfx", ".p12")
