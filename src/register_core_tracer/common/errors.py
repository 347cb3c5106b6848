"""
共通の例外定義。
不正な入力はValueErrorの派生として報告し、呼び出し元で一括して扱えるようにします。
"""
from typing import Optional

from register_core_tracer.common.types import CandidateMap


# @intent:responsibility プログラム、サンプル、構成などの構築時入力が不正であることを表します。
class ProgramFormatError(ValueError):
    """
    オペランド数の誤り、解釈できないオペコード、#ip宣言の欠落などを表す例外。
    """
    def __init__(self, message: str, line_num: Optional[int] = None):
        if line_num is not None:
            message = f"{message} (line {line_num})"
        super().__init__(message)
        self.line_num = line_num


# @intent:responsibility 消去法でオペコード対応表が一意に定まらなかったことを表します。
class UnresolvableOpcodeMappingError(ValueError):
    """
    消去ループが進展しなかった、あるいは候補集合が空になった場合に送出される。
    `candidates` には失敗時点の候補表が保持される。
    """
    def __init__(self, message: str, candidates: CandidateMap):
        super().__init__(message)
        self.candidates = {code: set(ops) for code, ops in candidates.items()}
