"""Tests for the toolset writers."""

from bundle_patcher.config import Toolset
from bundle_patcher.patches.toolsets import (
    find_app_body_start,
    find_app_state_var,
    find_tools_memo,
    write_toolset_app_state,
    write_toolsets,
)


APP = (
    'function Ast(){return{thinkingEnabled:Tq(),mode:"x"}}'
    'function Bst(){return{thinkingEnabled:Tq()}}'
    'function App({commands:A,debug:B,initialPrompt:C}){let[S,U]=Ust();'
    'let Tl=R.useMemo(()=>Ft(P),[P]);return Tl}'
)
TOOLSETS = [Toolset("dev", ["Read", "Edit"]), Toolset("all", "*")]


class TestFinders:
    def test_app_component(self):
        body_start = find_app_body_start(APP)
        assert APP[body_start:].startswith("{let[S,U]")
        assert find_app_state_var(APP, body_start) == "S"
        assert find_tools_memo(APP, body_start).identifiers == ["Tl", "R", "Ft", "P"]

    def test_no_app_component(self):
        assert find_app_body_start("function x(){}") is None


class TestAppState:
    def test_every_initialiser(self):
        result = write_toolset_app_state(APP, "dev")
        assert result.count('thinkingEnabled:Tq(),toolset:"dev"') == 2

    def test_no_default(self):
        result = write_toolset_app_state(APP, None)
        assert "thinkingEnabled:Tq(),toolset:undefined," in result


class TestWriteToolsets:
    def test_memo_filters_by_active_toolset(self):
        result = write_toolsets(APP, TOOLSETS, "dev")
        assert ('let Tl=R.useMemo(()=>{const toolsets={"dev":["Read","Edit"],"all":"*"};'
                'if(toolsets.hasOwnProperty(S.toolset)){const allowedTools=toolsets[S.toolset];'
                'if(allowedTools==="*")return Ft(P);'
                'return Ft(P).filter(toolDef=>allowedTools.includes(toolDef.name))}'
                'return Ft(P)},[Ft,S.toolset]);return Tl}') in result
        assert 'toolset:"dev"' in result

    def test_no_toolsets(self):
        assert write_toolsets(APP, []) is None

    def test_missing_memo(self):
        text = APP.replace("R.useMemo", "R.useCallback")
        assert write_toolsets(text, TOOLSETS) is None
