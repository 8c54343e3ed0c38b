"""Default query parser: normalization, tokenization, weighting and expansion."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

from ragsearch.errors import InvalidInputError
from ragsearch.query.types import ParseQuery, QueryLanguage, QueryParser
from ragsearch.utils.normalization import add_space_between_ascii_and_non_ascii, is_weak_word

MAX_KEYWORDS = 32
MAX_EXPRESSION_TERMS = 256

SYNONYM_FACTOR = 0.2
FINE_GRAINED_FACTOR = 0.5

WEAK_PHRASES: tuple[str, ...] = (
    "怎么办", "什么样的", "哪家", "一下", "那家", "请问", "啥样", "咋样了", "什么时候",
    "何时", "何地", "何人", "是否", "是不是", "多少", "哪里", "怎么", "哪儿", "怎么样",
    "如何", "哪些", "是啥", "啥是", "有没有", "哪位", "哪个", "什么", "在", "于", "和",
    "与", "的", "了", "是", "啊", "吧", "呀", "谁",
    "who", "what", "how", "which", "where", "why", "is", "are", "were", "was", "do",
    "does", "did", "has", "have", "be", "there", "you", "me", "your", "my", "mine",
    "please", "just", "may", "should", "would", "will", "go", "for", "with", "so",
    "the", "a", "an", "by", "as", "on", "in", "at", "up", "out", "down", "of", "to",
    "or", "and", "if",
)
_WEAK_PHRASE_SET = frozenset(WEAK_PHRASES)

WEAK_CHINESE_PREFIXES = ("在", "于", "是")
WEAK_CHINESE_SUFFIXES = ("吗", "呢", "吧", "啊", "呀", "的", "了")

_SEARCH_SYNTAX_CHARS = frozenset(" :|\r\n\t,，。？?/`!！&^%()[]{}<>*~'\"\\")

_SYNONYMS: dict[str, tuple[str, ...]] = {
    "密码": ("口令",),
    "重置": ("找回", "恢复"),
    "举办": ("举行",),
    "查询": ("检索", "搜索"),
    "search": ("query", "lookup"),
    "reset": ("recover", "restore"),
}

# Character-level traditional to simplified mapping for common characters.
_T2S_PAIRS = """
萬万 與与 專专 業业 叢丛 東东 絲丝 兩两 嚴严 喪丧 個个 豐丰 臨临 為为 麗丽 舉举
麼么 義义 烏乌 樂乐 喬乔 習习 鄉乡 書书 買买 亂乱 爭争 於于 虧亏 雲云 亞亚 產产
畝亩 親亲 億亿 僅仅 從从 侖仑 倉仓 儀仪 們们 價价 眾众 優优 會会 傘伞 偉伟 傳传
傷伤 倫伦 偽伪 體体 餘余 傭佣 僉佥 俠侠 侶侣 僥侥 偵侦 側侧 僑侨 儈侩 儂侬 俁俣
係系 儘尽 債债 傾倾 償偿 儲储 兒儿 兌兑 黨党 蘭兰 關关 興兴 茲兹 養养 獸兽 內内
岡冈 冊册 寫写 軍军 農农 馮冯 衝冲 決决 況况 凍冻 淨净 涼凉 減减 湊凑 凜凛 幾几
鳳凤 憑凭 凱凯 擊击 鑿凿 芻刍 劃划 劉刘 則则 剛刚 創创 刪删 別别 剎刹 劑剂 剮剐
劍剑 劇剧 勸劝 辦办 務务 動动 勵励 勁劲 勞劳 勢势 勳勋 匯汇 區区 醫医 華华 協协
單单 賣卖 盧卢 衛卫 卻却 廠厂 廳厅 曆历 厲厉 壓压 厭厌 縣县 參参 雙双 發发 變变
敘叙 疊叠 葉叶 號号 嘆叹 嚇吓 呂吕 嗎吗 員员 聽听 啟启 啓启 吳吴 嗚呜 響响 問问
啞哑 喚唤 喲哟 嘩哗 團团 園园 圍围 圖图 圓圆 國国 聖圣 場场 壞坏 塊块 堅坚 壇坛
壩坝 墳坟 墜坠 壟垄 壘垒 執执 報报 壺壶 處处 備备 復复 夠够 頭头 夾夹 奪夺 奮奋
獎奖 婦妇 媽妈 嫵妩 孫孙 學学 寧宁 寶宝 實实 寵宠 審审 憲宪 宮宫 對对 尋寻 導导
屆届 層层 屬属 歲岁 島岛 峽峡 崗岗 嶺岭 嶼屿 幣币 帥帅 師师 帳帐 帶带 幫帮 庫库
廣广 應应 廟庙 廢废 開开 異异 棄弃 張张 彌弥 彎弯 強强 歸归 當当 錄录 徹彻 徑径
後后 憶忆 懷怀 態态 憐怜 總总 戀恋 惡恶 悶闷 悅悦 懸悬 驚惊 慘惨 慣惯 憂忧 懶懒
戲戏 戰战 戶户 撲扑 擴扩 掃扫 揚扬 擾扰 撫抚 搶抢 護护 擔担 擬拟 擁拥 擇择 揮挥
擠挤 撈捞 損损 換换 據据 擄掳 攜携 攝摄 擺摆 搖摇 擋挡 撐撑 數数 斷断 無无 舊旧
時时 曠旷 晝昼 顯显 晉晋 曬晒 曉晓 暫暂 術术 機机 殺杀 雜杂 權权 條条 來来 楊杨
構构 標标 樣样 橫横 樹树 橋桥 檢检 歐欧 歡欢 歷历 殘残 氣气 漢汉 湯汤 溝沟 沒没
灣湾 滅灭 燈灯 災灾 點点 煉炼 煙烟 燒烧 熱热 愛爱 牽牵 狀状 猶犹 獨独 獲获 現现
環环 電电 畫画 療疗 盤盘 監监 睏困 礎础 確确 禮礼 禍祸 離离 種种 積积 稱称 穩稳
窮穷 競竞 筆笔 節节 範范 築筑 簡简 類类 糧粮 紀纪 約约 紅红 級级 紙纸 細细 組组
終终 結结 給给 絕绝 統统 經经 綠绿 維维 網网 練练 線线 編编 緣缘 績绩 續续 聞闻
聯联 職职 聲声 肅肃 腦脑 腳脚 臉脸 艦舰 藝艺 莊庄 蘇苏 蟲虫 衆众 補补 裝装 製制
複复 見见 規规 視视 覺觉 覽览 觀观 訂订 計计 認认 討讨 讓让 訓训 記记 講讲 許许
論论 設设 訪访 證证 評评 識识 詞词 試试 詩诗 話话 該该 詳详 誤误 說说 請请 讀读
課课 誰谁 調调 談谈 謝谢 讚赞 貝贝 負负 財财 貢贡 貨货 質质 貴贵 費费 資资 賓宾
賽赛 購购 贈赠 趕赶 車车 軟软 輕轻 載载 較较 輸输 轉转 辭辞 邊边 遼辽 達达 遠远
運运 還还 這这 進进 遲迟 選选 遺遗 郵邮 鄰邻 鐵铁 錢钱 錯错 鍵键 鏡镜 長长 門门
閉闭 間间 閱阅 隊队 陽阳 陰阴 際际 陸陆 險险 隨随 隱隐 難难 雞鸡 靜静 頁页 頂顶
項项 順顺 須须 預预 領领 題题 額额 顏颜 願愿 風风 飛飞 飯饭 館馆 馬马 驗验 鬥斗
魚鱼 鳥鸟 麥麦 黃黄 齊齐 齒齿 龍龙 龜龟 碼码 薦荐 裡里 裏里 碩硕 獻献 鄭郑 勝胜
廁厕 飲饮 錶表 鐘钟 麵面 髮发 隻只 準准 幹干 穀谷 雖虽 檔档 並并 丟丢 佔占 併并
臺台 颱台 庫库 圖图 料料 據据 擬拟
"""
_T2S_TABLE = str.maketrans({pair[0]: pair[1] for pair in _T2S_PAIRS.split()})


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def _is_ascii_alnum(ch: str) -> bool:
    return ch.isascii() and ch.isalnum()


def _is_ascii_alpha(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


def _is_ascii_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


class _QueryPath(enum.Enum):
    CHINESE = "chinese"
    ENGLISH = "english"


@dataclass(frozen=True)
class _WeightedTerm:
    text: str
    weight: float


def _fullwidth_to_halfwidth(query: str) -> str:
    def convert(ch: str) -> str:
        code = ord(ch)
        if code == 0x3000:
            return " "
        if 0xFF01 <= code <= 0xFF5E:
            return chr(code - 0xFEE0)
        return ch

    return "".join(map(convert, query))


def _traditional_to_simplified(query: str) -> str:
    return query.translate(_T2S_TABLE)


def _replace_search_syntax_with_space(query: str) -> str:
    cleaned = "".join(
        " " if ch in _SEARCH_SYNTAX_CHARS or ch.isspace() else ch for ch in query
    )
    return " ".join(cleaned.split())


def _strip_weak_chinese_edges(token: str) -> list[str]:
    stripped = token
    prefix = next((p for p in WEAK_CHINESE_PREFIXES if stripped.startswith(p)), None)
    if prefix is not None and len(stripped) > len(prefix):
        stripped = stripped[len(prefix):]
    suffix = next((s for s in WEAK_CHINESE_SUFFIXES if stripped.endswith(s)), None)
    if suffix is not None and len(stripped) > len(suffix):
        stripped = stripped[: -len(suffix)]
    return [stripped] if stripped else []


def _remove_weak_semantic_words(query: str) -> str:
    cleaned = query
    for weak in WEAK_PHRASES:
        cleaned = cleaned.replace(weak, " ")

    tokens = [
        token
        for raw in cleaned.split()
        for token in _strip_weak_chinese_edges(raw)
        if not is_weak_word(token) and token not in _WEAK_PHRASE_SET
    ]
    return " ".join(tokens) if tokens else query


def _detect_language(query: str) -> QueryLanguage:
    has_ascii = any(_is_ascii_alpha(ch) for ch in query)
    has_non_ascii = any(not ch.isascii() and not ch.isspace() for ch in query)
    if has_ascii and has_non_ascii:
        return QueryLanguage.MIXED
    if has_ascii:
        return QueryLanguage.ENGLISH
    if has_non_ascii:
        return QueryLanguage.CHINESE
    return QueryLanguage.UNKNOWN


def _query_path(language: QueryLanguage) -> _QueryPath:
    return _QueryPath.ENGLISH if language is QueryLanguage.ENGLISH else _QueryPath.CHINESE


def _split_mixed_token(token: str) -> list[str]:
    parts: list[str] = []
    current = ""
    current_ascii: bool | None = None
    for ch in token:
        ascii_alnum = _is_ascii_alnum(ch)
        if current_ascii is not None and current_ascii != ascii_alnum and current:
            parts.append(current)
            current = ""
        current_ascii = ascii_alnum
        current += ch
    if current:
        parts.append(current)
    return parts


def _tokenize(query: str, path: _QueryPath) -> list[str]:
    if path is _QueryPath.ENGLISH:
        return query.split()
    return [part for token in query.split() for part in _split_mixed_token(token) if part]


def _term_weight(token: str, path: _QueryPath) -> float:
    if all(_is_ascii_digit(ch) for ch in token):
        return 2.0
    if all(_is_ascii_alpha(ch) for ch in token) and len(token.encode("utf-8")) <= 2:
        return _f32(0.3)
    base = _f32(1.0) if path is _QueryPath.ENGLISH else _f32(1.2)
    length_boost = _f32(min(len(token), 8) * _f32(0.08))
    return _f32(base + length_boost)


def _synonyms(token: str) -> tuple[str, ...]:
    return _SYNONYMS.get(token, ())


def _controlled_segments(token: str) -> list[str]:
    if any(_is_ascii_alnum(ch) for ch in token) or len(token) < 3:
        return []
    return [a + b for a, b in zip(token, token[1:]) if a + b != token]


def _escape_expression_token(token: str) -> str:
    return token.replace("\\", "\\\\").replace('"', '\\"').replace("'", "")


def _weighted_expression(token: str, weight: float) -> str:
    escaped = _escape_expression_token(token)
    if " " in escaped:
        return f'"{escaped}"^{weight:.3f}'
    return f"{escaped}^{weight:.3f}"


class DefaultQueryParser(QueryParser):
    """Normalizes a query, weights its terms and expands synonyms and segments."""

    def parse(self, query: str) -> ParseQuery:
        if not query.strip():
            raise InvalidInputError("query cannot be empty")

        spaced = add_space_between_ascii_and_non_ascii(query)
        lowered = spaced.lower()
        halfwidth = _fullwidth_to_halfwidth(lowered)
        simplified = _traditional_to_simplified(halfwidth)
        safe = _replace_search_syntax_with_space(simplified)
        normalized = _remove_weak_semantic_words(safe)
        language = _detect_language(normalized)
        path = _query_path(language)
        tokens = _tokenize(normalized, path)

        weighted = [
            _WeightedTerm(token, _term_weight(token, path))
            for token in tokens[:MAX_EXPRESSION_TERMS]
        ]
        synonym_terms = [
            _WeightedTerm(synonym, _f32(term.weight * _f32(SYNONYM_FACTOR)))
            for term in weighted
            for synonym in _synonyms(term.text)
        ]
        fine_grained = (
            []
            if path is _QueryPath.ENGLISH
            else [
                _WeightedTerm(segment, _f32(term.weight * _f32(FINE_GRAINED_FACTOR)))
                for term in weighted
                for segment in _controlled_segments(term.text)
            ]
        )

        return ParseQuery(
            original_query=query,
            normalized_query=normalized,
            keywords=self._build_keywords(tokens, synonym_terms, fine_grained),
            text_expression=self._build_text_expression(weighted, synonym_terms, fine_grained),
            language=language,
        )

    @staticmethod
    def _build_keywords(
        tokens: list[str],
        synonym_terms: list[_WeightedTerm],
        fine_grained: list[_WeightedTerm],
    ) -> list[str]:
        candidates = [
            *tokens,
            *(term.text for term in synonym_terms),
            *(term.text for term in fine_grained),
        ]
        keywords: list[str] = []
        seen: set[str] = set()
        for keyword in candidates:
            if not keyword or keyword in seen:
                continue
            seen.add(keyword)
            keywords.append(keyword)
            if len(keywords) >= MAX_KEYWORDS:
                break
        return keywords

    @staticmethod
    def _build_text_expression(
        weighted: list[_WeightedTerm],
        synonym_terms: list[_WeightedTerm],
        fine_grained: list[_WeightedTerm],
    ) -> str:
        terms = [*weighted, *synonym_terms, *fine_grained][:MAX_EXPRESSION_TERMS]
        return " OR ".join(_weighted_expression(term.text, term.weight) for term in terms)